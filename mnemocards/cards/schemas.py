from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List, Literal


PartOfSpeech = Literal["noun", "verb", "adjective"]
SemanticClass = Literal["object", "action", "quality"]


# Word analysis / phonetics
class WordAnalysis(BaseModel):
    normalized_word: str
    pos: PartOfSpeech
    ipa: str
    translation: str
    basic_meaning: str
    semantic_class: SemanticClass
    example_usage: str


class PhoneticChunk(BaseModel):
    chunk: str
    ipa: str


class Phonetics(BaseModel):
    ipa: str
    chunks: List[PhoneticChunk]


# Anchors
class AnchorCandidate(BaseModel):
    word: str
    phonetic_similarity: float = Field(ge=0.0, le=1.0)
    imageable: bool = True
    frequency: Literal["high", "medium", "low"] = "medium"


class ChunkCandidates(BaseModel):
    """All anchor candidates proposed for one chunk."""
    chunk: str
    candidates: List[AnchorCandidate] = []


class Anchor(BaseModel):
    chunk: str
    anchor_word: str
    score: float = 0.0
    reason: str = ""


# Scene
class Binding(BaseModel):
    anchor: str
    relation: str  # on, inside, attached_to, holding, wearing, sitting_on, ...
    target: str


class SceneStyle(BaseModel):
    visual: str = "clean, realistic 3D"
    background: str = "simple"
    no_text: bool = True


class Scene(BaseModel):
    main_object: str
    bindings: List[Binding] = []
    style: SceneStyle = Field(default_factory=SceneStyle)


class ImagePrompt(BaseModel):
    prompt: str
    negative_prompt: str = ""


# Card Schemas
class CardCreate(BaseModel):
    """Everything the creation pipeline assembled for one card."""
    model_config = ConfigDict(populate_by_name=True)

    word: str
    analysis: WordAnalysis
    phonetics: Optional[Phonetics] = None
    anchors: List[Anchor] = []
    scene: Optional[Scene] = None
    image_prompt: Optional[ImagePrompt] = Field(None, alias="imagePrompt")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    audio_url: Optional[str] = Field(None, alias="audioUrl")
    learning_language: Optional[str] = Field(None, alias="learningLanguage")
    native_language: Optional[str] = Field(None, alias="nativeLanguage")


class CardAnchorResponse(Anchor):
    model_config = ConfigDict(from_attributes=True)

    chunk_ipa: Optional[str] = None
    score: Optional[float] = None
    reason: Optional[str] = None


class BindingResponse(Binding):
    model_config = ConfigDict(from_attributes=True)


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    word: str
    pos: Optional[str] = None
    ipa: Optional[str] = None
    translation: Optional[str] = None
    learning_language: Optional[str] = None
    native_language: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    example: Optional[str] = None
    example_translation: Optional[str] = None
    created_at: datetime


class CardDetail(CardResponse):
    analysis: WordAnalysis
    phonetics: Optional[Phonetics] = None
    scene: Optional[Scene] = None
    image_prompt: Optional[ImagePrompt] = None
    anchors: List[CardAnchorResponse] = []
    bindings: List[BindingResponse] = []


class CardList(BaseModel):
    cards: List[CardResponse]
    total: int
