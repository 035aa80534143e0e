"""
Request and response bodies of the generation endpoints.

Top-level keys are camelCase on the wire (``learningLanguage``,
``imagePrompt``...) while nested objects keep their snake_case fields.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mnemocards.cards.schemas import (
    Anchor,
    ChunkCandidates,
    ImagePrompt,
    PhoneticChunk,
    Phonetics,
    Scene,
    WordAnalysis,
)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnalyzeRequest(_WireModel):
    word: str
    learning_language: str = Field(alias="learningLanguage")
    native_language: str = Field(alias="nativeLanguage")


class AnalyzeResponse(_WireModel):
    analysis: WordAnalysis
    phonetics: Phonetics


class ChunkingCustomizeRequest(_WireModel):
    word: str
    learning_language: str = Field(alias="learningLanguage")
    native_language: str = Field(alias="nativeLanguage")
    custom_instructions: Optional[str] = Field(None, alias="customInstructions")
    current_chunks: Optional[List[PhoneticChunk]] = Field(None, alias="currentChunks")


class ChunkingResponse(_WireModel):
    phonetics: Phonetics


class AnchorsRequest(_WireModel):
    word: str
    phonetics: Phonetics
    native_language: str = Field(alias="nativeLanguage")
    custom_instructions: Optional[str] = Field(None, alias="customInstructions")
    current_anchors: Optional[List[Anchor]] = Field(None, alias="currentAnchors")


class AnchorsResponse(_WireModel):
    candidates: List[ChunkCandidates]


class SceneRequest(_WireModel):
    word: str
    analysis: WordAnalysis
    anchors: List[Anchor]
    native_language: str = Field(alias="nativeLanguage")
    custom_instructions: Optional[str] = Field(None, alias="customInstructions")
    current_scene: Optional[Scene] = Field(None, alias="currentScene")


class SceneResponse(_WireModel):
    scene: Scene
    image_prompt: ImagePrompt = Field(alias="imagePrompt")


class ImageRequest(_WireModel):
    prompt: str
    negative_prompt: Optional[str] = Field(None, alias="negativePrompt")
    custom_instructions: Optional[str] = Field(None, alias="customInstructions")


class ImageResponse(_WireModel):
    """Either a finished image or a rewritten prompt to generate from."""
    image_url: Optional[str] = Field(None, alias="imageUrl")
    enhanced_prompt: Optional[str] = Field(None, alias="enhancedPrompt")


class AudioResponse(_WireModel):
    audio_url: str = Field(alias="audioUrl")
    source: str
