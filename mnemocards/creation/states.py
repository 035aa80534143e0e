"""
Stages of the card creation wizard.

Each stage is its own immutable type holding exactly the data that exists at
that point of the flow, so e.g. a scene can only be read once the flow has
reached the scene step.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Union

from mnemocards.cards.schemas import (
    Anchor,
    ChunkCandidates,
    ImagePrompt,
    Phonetics,
    Scene,
    WordAnalysis,
)


class Step(str, Enum):
    INPUT = "input"
    ANALYSIS = "analysis"
    CHUNKING = "chunking"
    ANCHORS = "anchors"
    BINDINGS = "bindings"
    IMAGE = "image"
    COMPLETE = "complete"


@dataclass(frozen=True)
class InputStage:
    step: ClassVar[Step] = Step.INPUT


@dataclass(frozen=True)
class AnalysisStage:
    step: ClassVar[Step] = Step.ANALYSIS

    word: str
    analysis: WordAnalysis
    phonetics: Phonetics


@dataclass(frozen=True)
class ChunkingStage:
    step: ClassVar[Step] = Step.CHUNKING

    word: str
    analysis: WordAnalysis
    phonetics: Phonetics


@dataclass(frozen=True)
class AnchorsStage:
    step: ClassVar[Step] = Step.ANCHORS

    word: str
    analysis: WordAnalysis
    phonetics: Phonetics
    anchor_candidates: Tuple[ChunkCandidates, ...]
    # chunk text -> chosen anchor; at most one per chunk
    selected_anchors: Dict[str, Anchor] = field(default_factory=dict)

    @property
    def chunks(self) -> List[str]:
        return [c.chunk for c in self.anchor_candidates]

    @property
    def missing_chunks(self) -> List[str]:
        return [chunk for chunk in self.chunks if chunk not in self.selected_anchors]

    def ordered_anchors(self) -> List[Anchor]:
        """Selected anchors in chunk order."""
        return [self.selected_anchors[chunk] for chunk in self.chunks if chunk in self.selected_anchors]


@dataclass(frozen=True)
class SceneStage:
    step: ClassVar[Step] = Step.BINDINGS

    word: str
    analysis: WordAnalysis
    phonetics: Phonetics
    anchor_candidates: Tuple[ChunkCandidates, ...]
    selected_anchors: Dict[str, Anchor]
    scene: Scene
    image_prompt: ImagePrompt


@dataclass(frozen=True)
class ImageStage:
    step: ClassVar[Step] = Step.IMAGE

    word: str
    analysis: WordAnalysis
    phonetics: Phonetics
    anchor_candidates: Tuple[ChunkCandidates, ...]
    selected_anchors: Dict[str, Anchor]
    scene: Scene
    image_prompt: ImagePrompt
    image_url: Optional[str] = None


@dataclass(frozen=True)
class CompleteStage:
    step: ClassVar[Step] = Step.COMPLETE

    word: str
    analysis: WordAnalysis
    anchors: Tuple[Anchor, ...]
    image_url: Optional[str]
    card_id: Optional[int] = None


Stage = Union[
    InputStage,
    AnalysisStage,
    ChunkingStage,
    AnchorsStage,
    SceneStage,
    ImageStage,
    CompleteStage,
]


@dataclass
class CardCreationSession:
    """Flat view of a stage: every field the wizard can hold, None until produced."""
    step: Step = Step.INPUT
    word: str = ""
    analysis: Optional[WordAnalysis] = None
    phonetics: Optional[Phonetics] = None
    anchor_candidates: List[ChunkCandidates] = field(default_factory=list)
    selected_anchors: List[Anchor] = field(default_factory=list)
    scene: Optional[Scene] = None
    image_prompt: Optional[ImagePrompt] = None
    image_url: Optional[str] = None
    error: Optional[str] = None


def session_view(stage: Stage, error: Optional[str] = None) -> CardCreationSession:
    session = CardCreationSession(step=stage.step, error=error)
    session.word = getattr(stage, "word", "")
    session.analysis = getattr(stage, "analysis", None)
    session.phonetics = getattr(stage, "phonetics", None)
    session.anchor_candidates = list(getattr(stage, "anchor_candidates", ()))
    if isinstance(stage, CompleteStage):
        session.selected_anchors = list(stage.anchors)
    elif isinstance(stage, AnchorsStage):
        session.selected_anchors = stage.ordered_anchors()
    elif isinstance(stage, (SceneStage, ImageStage)):
        session.selected_anchors = list(stage.selected_anchors.values())
    session.scene = getattr(stage, "scene", None)
    session.image_prompt = getattr(stage, "image_prompt", None)
    session.image_url = getattr(stage, "image_url", None)
    return session
