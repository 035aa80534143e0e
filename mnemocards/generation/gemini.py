import asyncio
import base64
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Any, Callable, List, Optional, Type, TypeVar
from urllib.parse import quote

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from mnemocards.config import Settings, get_settings
from mnemocards.cards.schemas import (
    Anchor,
    ChunkCandidates,
    PhoneticChunk,
    Phonetics,
    Scene,
    WordAnalysis,
)
from mnemocards.generation import prompts
from mnemocards.generation.schemas import (
    AnalyzeResponse,
    AnchorsResponse,
    ChunkingResponse,
    SceneResponse,
)

logger = logging.getLogger(__name__)

# Thread pool for running sync Gemini calls
_executor = ThreadPoolExecutor(max_workers=4)

PLACEHOLDER_IMAGE_URL = "https://placehold.co/512x512/e2e8f0/64748b?text=" + quote("Mnemonic\nScene")

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

T = TypeVar("T", bound=BaseModel)


class GenerationError(Exception):
    """Raised when the generative model call fails or returns unusable output."""


class GenerationUnavailableError(GenerationError):
    """Raised when the Generative Language API is not configured or not enabled."""


class _PromptRewrite(BaseModel):
    prompt: str


def parse_json_response(text: str) -> Any:
    """
    Parse JSON out of a model response.

    Accepts a markdown code block (```json ... ```) or raw JSON.
    """
    match = _FENCED_JSON.search(text)
    if match:
        return json.loads(match.group(1).strip())
    return json.loads(text.strip())


def _is_service_disabled(error: Exception) -> bool:
    return getattr(error, "code", None) == 403 or "SERVICE_DISABLED" in str(error)


class MnemonicGenerator:
    """Gemini-backed generation of analyses, anchors, scenes and images."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        self.settings = settings
        if client is None and settings.GEMINI_API_KEY:
            client = genai.Client(
                api_key=settings.GEMINI_API_KEY,
                http_options={"timeout": settings.GEMINI_HTTP_TIMEOUT_MS},
            )
        self.client = client
        if self.client is None:
            logger.warning("GEMINI_API_KEY is not set. AI features will not work.")

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking SDK call in the thread pool with a timeout."""
        timeout = self.settings.GENERATION_TIMEOUT_SECONDS
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(loop.run_in_executor(_executor, func, *args), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Gemini call timed out after {timeout} seconds")
            raise GenerationError(f"Generation timed out after {timeout} seconds")
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Error querying Gemini: {e}")
            if _is_service_disabled(e):
                raise GenerationUnavailableError(
                    "Generative Language API is not enabled. Please enable it in Google Cloud Console."
                ) from e
            raise GenerationError(str(e)) from e

    def _generate_text_sync(self, prompt: str) -> str:
        if self.client is None:
            raise GenerationUnavailableError("Gemini API key not configured")
        logger.info("Querying Gemini LLM...")
        response = self.client.models.generate_content(
            model=self.settings.GEMINI_TEXT_MODEL,
            contents=prompt,
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
        logger.info("Received response from Gemini LLM.")
        return response.text or ""

    async def _generate_json(self, prompt: str, schema: Type[T]) -> T:
        text = await self._run(self._generate_text_sync, prompt)
        try:
            return schema.model_validate(parse_json_response(text))
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"Unusable Gemini response for {schema.__name__}: {e}")
            raise GenerationError(f"Model returned malformed {schema.__name__}") from e

    async def analyze_word(self, word: str, learning_language: str, native_language: str) -> AnalyzeResponse:
        prompt = prompts.analysis_prompt(word, learning_language, native_language)
        return await self._generate_json(prompt, AnalyzeResponse)

    async def customize_chunking(
        self,
        word: str,
        learning_language: str,
        custom_instructions: Optional[str] = None,
        current_chunks: Optional[List[PhoneticChunk]] = None,
    ) -> Phonetics:
        prompt = prompts.chunking_prompt(word, learning_language, custom_instructions, current_chunks)
        result = await self._generate_json(prompt, ChunkingResponse)
        return result.phonetics

    async def generate_anchors(
        self,
        word: str,
        phonetics: Phonetics,
        native_language: str,
        custom_instructions: Optional[str] = None,
        current_anchors: Optional[List[Anchor]] = None,
    ) -> List[ChunkCandidates]:
        prompt = prompts.anchors_prompt(word, phonetics.chunks, native_language, custom_instructions, current_anchors)
        result = await self._generate_json(prompt, AnchorsResponse)
        return result.candidates

    async def build_scene(
        self,
        word: str,
        analysis: WordAnalysis,
        anchors: List[Anchor],
        native_language: str,
        custom_instructions: Optional[str] = None,
        current_scene: Optional[Scene] = None,
    ) -> SceneResponse:
        prompt = prompts.scene_prompt(word, analysis, anchors, native_language, custom_instructions, current_scene)
        return await self._generate_json(prompt, SceneResponse)

    async def enhance_image_prompt(self, prompt: str, custom_instructions: str) -> str:
        """Rewrite an image prompt to follow extra user instructions."""
        result = await self._generate_json(
            prompts.image_prompt_enhancement(prompt, custom_instructions), _PromptRewrite
        )
        return result.prompt

    def _generate_image_sync(self, prompt: str, negative_prompt: str) -> str:
        logger.info("Requesting image from Imagen...")
        response = self.client.models.generate_images(
            model=self.settings.IMAGEN_MODEL,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                aspect_ratio="1:1",
                negative_prompt=negative_prompt,
            ),
        )
        if not response.generated_images or response.generated_images[0].image is None:
            raise GenerationError("No image in response")
        image_bytes = response.generated_images[0].image.image_bytes
        return "data:image/png;base64," + base64.b64encode(image_bytes).decode("ascii")

    async def generate_image(self, prompt: str, negative_prompt: Optional[str] = None) -> str:
        """
        Generate an image for the prompt and return it as a data URL.

        Falls back to a placeholder image URL when no API key is configured
        or when Imagen fails.
        """
        if self.client is None:
            logger.warning("No Gemini API key, using placeholder image")
            return PLACEHOLDER_IMAGE_URL
        try:
            return await self._run(
                self._generate_image_sync, prompt, negative_prompt or prompts.DEFAULT_NEGATIVE_PROMPT
            )
        except GenerationError as e:
            logger.error(f"Imagen failed, using placeholder image: {e}")
            return PLACEHOLDER_IMAGE_URL


@lru_cache()
def get_generator() -> MnemonicGenerator:
    """Dependency providing the shared generator."""
    return MnemonicGenerator(get_settings())
