"""
Outbound calls made by the card creation wizard.

The pipeline talks to a ``CreationBackend``; ``HttpCreationBackend`` is the
implementation that calls this service's HTTP API.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from mnemocards.cards.schemas import (
    Anchor,
    CardCreate,
    ChunkCandidates,
    PhoneticChunk,
    Phonetics,
    Scene,
    WordAnalysis,
)
from mnemocards.generation.schemas import (
    AnalyzeResponse,
    AnchorsResponse,
    ChunkingResponse,
    ImageResponse,
    SceneResponse,
)

logger = logging.getLogger(__name__)


class StageCallError(Exception):
    """An outbound stage call failed; the message is shown to the user as is."""


class CreationBackend(Protocol):
    async def analyze(self, word: str, learning_language: str, native_language: str) -> AnalyzeResponse:
        ...

    async def customize_chunking(
        self,
        word: str,
        learning_language: str,
        native_language: str,
        custom_instructions: str,
        current_chunks: Optional[List[PhoneticChunk]] = None,
    ) -> Phonetics:
        ...

    async def generate_anchors(
        self,
        word: str,
        phonetics: Phonetics,
        native_language: str,
        custom_instructions: Optional[str] = None,
        current_anchors: Optional[List[Anchor]] = None,
    ) -> List[ChunkCandidates]:
        ...

    async def build_scene(
        self,
        word: str,
        analysis: WordAnalysis,
        anchors: List[Anchor],
        native_language: str,
        custom_instructions: Optional[str] = None,
        current_scene: Optional[Scene] = None,
    ) -> SceneResponse:
        ...

    async def generate_image(
        self,
        prompt: str,
        negative_prompt: Optional[str] = None,
        custom_instructions: Optional[str] = None,
    ) -> ImageResponse:
        ...

    async def create_card(self, card: CardCreate) -> Dict[str, Any]:
        ...


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    return value


class HttpCreationBackend:
    """
    CreationBackend over the service's HTTP API.

    Args:
        client: An ``httpx.AsyncClient`` whose base_url points at the API. Send
            the ``X-User-Id`` header on it for the card-saving call.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _post(self, path: str, body: Dict[str, Any], failure: str) -> Dict[str, Any]:
        payload = {key: _dump(value) for key, value in body.items() if value is not None}
        try:
            response = await self.client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"POST {path} failed: {e}")
            raise StageCallError(failure) from e

        if response.is_success:
            return response.json()

        detail = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail")
        logger.error(f"POST {path} returned {response.status_code}: {detail}")
        # 422 details are validation error lists, not user-facing text
        raise StageCallError(detail if isinstance(detail, str) and detail else failure)

    async def analyze(self, word: str, learning_language: str, native_language: str) -> AnalyzeResponse:
        data = await self._post("/analyze", {
            "word": word,
            "learningLanguage": learning_language,
            "nativeLanguage": native_language,
        }, "Failed to analyze word")
        return AnalyzeResponse.model_validate(data)

    async def customize_chunking(
        self,
        word: str,
        learning_language: str,
        native_language: str,
        custom_instructions: str,
        current_chunks: Optional[List[PhoneticChunk]] = None,
    ) -> Phonetics:
        data = await self._post("/chunking/customize", {
            "word": word,
            "learningLanguage": learning_language,
            "nativeLanguage": native_language,
            "customInstructions": custom_instructions,
            "currentChunks": current_chunks,
        }, "Failed to customize chunking")
        return ChunkingResponse.model_validate(data).phonetics

    async def generate_anchors(
        self,
        word: str,
        phonetics: Phonetics,
        native_language: str,
        custom_instructions: Optional[str] = None,
        current_anchors: Optional[List[Anchor]] = None,
    ) -> List[ChunkCandidates]:
        if custom_instructions is None:
            path, failure = "/anchors", "Failed to generate anchors"
        else:
            path, failure = "/anchors/customize", "Failed to customize anchors"
        data = await self._post(path, {
            "word": word,
            "phonetics": phonetics,
            "nativeLanguage": native_language,
            "customInstructions": custom_instructions,
            "currentAnchors": current_anchors,
        }, failure)
        return AnchorsResponse.model_validate(data).candidates

    async def build_scene(
        self,
        word: str,
        analysis: WordAnalysis,
        anchors: List[Anchor],
        native_language: str,
        custom_instructions: Optional[str] = None,
        current_scene: Optional[Scene] = None,
    ) -> SceneResponse:
        if custom_instructions is None:
            path, failure = "/scene", "Failed to build scene"
        else:
            path, failure = "/scene/customize", "Failed to customize scene"
        data = await self._post(path, {
            "word": word,
            "analysis": analysis,
            "anchors": anchors,
            "nativeLanguage": native_language,
            "customInstructions": custom_instructions,
            "currentScene": current_scene,
        }, failure)
        return SceneResponse.model_validate(data)

    async def generate_image(
        self,
        prompt: str,
        negative_prompt: Optional[str] = None,
        custom_instructions: Optional[str] = None,
    ) -> ImageResponse:
        failure = "Failed to generate image" if custom_instructions is None else "Failed to customize image"
        data = await self._post("/image", {
            "prompt": prompt,
            "negativePrompt": negative_prompt,
            "customInstructions": custom_instructions,
        }, failure)
        return ImageResponse.model_validate(data)

    async def create_card(self, card: CardCreate) -> Dict[str, Any]:
        return await self._post("/cards", card.model_dump(mode="json", by_alias=True), "Failed to save card")
