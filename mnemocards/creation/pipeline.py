"""
Card creation wizard.

``CardCreationPipeline`` walks one learner through

    input -> analysis -> chunking -> anchors -> bindings (scene) -> image -> complete

holding the accumulated data in memory. Every outbound call goes through the
injected ``CreationBackend``. A failed call leaves the pipeline where it was
and puts a message in ``error``; the user retries by calling the same
operation again.

Operations return True when they did what was asked and False when they were
ignored (another call in flight), rejected by validation or failed. Calling an
operation the current step does not offer raises InvalidTransitionError.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple

from mnemocards.cards.schemas import Anchor, AnchorCandidate, CardCreate, ChunkCandidates, ImagePrompt
from mnemocards.creation.backend import CreationBackend, StageCallError
from mnemocards.creation.states import (
    AnalysisStage,
    AnchorsStage,
    CardCreationSession,
    ChunkingStage,
    CompleteStage,
    ImageStage,
    InputStage,
    SceneStage,
    Stage,
    Step,
    session_view,
)

logger = logging.getLogger(__name__)

AUTO_SELECTED_REASON = "Auto-selected best match"
USER_SELECTED_REASON = "User selected"

DEFAULT_MAX_PROMPT_ENHANCEMENTS = 2


class InvalidTransitionError(Exception):
    """The operation is not available at the pipeline's current step."""


def auto_select(anchor_candidates: Sequence[ChunkCandidates]) -> Dict[str, Anchor]:
    """
    Pick the most similar-sounding candidate for every chunk.

    Candidates are ranked here by phonetic_similarity rather than trusting the
    order they arrived in. Chunks without candidates get no anchor.
    """
    selected = {}
    for group in anchor_candidates:
        ranked = sorted(group.candidates, key=lambda c: c.phonetic_similarity, reverse=True)
        if not ranked:
            continue
        best = ranked[0]
        selected[group.chunk] = Anchor(
            chunk=group.chunk,
            anchor_word=best.word,
            score=best.phonetic_similarity,
            reason=AUTO_SELECTED_REASON,
        )
    return selected


class CardCreationPipeline:
    """
    In-memory state machine of one card creation flow.

    Args:
        backend: Performs the analysis, anchor, scene, image and save calls
        learning_language: Language code of the words being learned
        native_language: Language code anchors are drawn from
        max_prompt_enhancements: How many rewritten image prompts one image
            customization may follow before giving up
    """

    def __init__(
        self,
        backend: CreationBackend,
        learning_language: str,
        native_language: str,
        max_prompt_enhancements: int = DEFAULT_MAX_PROMPT_ENHANCEMENTS,
    ):
        self.backend = backend
        self.learning_language = learning_language
        self.native_language = native_language
        self.max_prompt_enhancements = max_prompt_enhancements

        self.stage: Stage = InputStage()
        self.error: Optional[str] = None
        self.loading = False
        self.generating = False

    @property
    def step(self) -> Step:
        return self.stage.step

    @property
    def busy(self) -> bool:
        return self.loading or self.generating

    @property
    def session(self) -> CardCreationSession:
        return session_view(self.stage, self.error)

    # -- plumbing ---------------------------------------------------------

    def _expect(self, *stage_types: type) -> Any:
        if not isinstance(self.stage, stage_types):
            allowed = ", ".join(t.step.value for t in stage_types)
            raise InvalidTransitionError(f"Not available at step '{self.step.value}' (only at: {allowed})")
        return self.stage

    def _ignored_while_busy(self) -> bool:
        if self.busy:
            logger.warning(f"Ignoring request at step '{self.step.value}': a call is already in flight")
            return True
        return False

    @asynccontextmanager
    async def _in_flight(self, flag: str):
        setattr(self, flag, True)
        self.error = None
        try:
            yield
        finally:
            setattr(self, flag, False)

    async def _call(self, failure: str, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Tuple[bool, Any]:
        """
        Run one backend call, turning failures into a user-facing error.

        The error is dropped when the flow was reset while the call was awaited.
        """
        stage = self.stage
        try:
            return True, await func(*args, **kwargs)
        except StageCallError as e:
            message = str(e) or f"{failure}. Please try again."
        except Exception:
            logger.exception(failure)
            message = f"{failure}. Please try again."
        if not self._superseded(stage):
            self.error = message
        return False, None

    def _superseded(self, stage: Stage) -> bool:
        # reset() may run while a call is awaited; its result then belongs to nobody
        if self.stage is not stage:
            logger.info("Discarding result of a call made before the flow was reset")
            return True
        return False

    def _require_instructions(self, instructions: str) -> bool:
        if not instructions or not instructions.strip():
            self.error = "Please describe what to change"
            return False
        return True

    # -- input ------------------------------------------------------------

    async def submit_word(self, word: str) -> bool:
        stage = self._expect(InputStage)
        if self._ignored_while_busy():
            return False
        word = (word or "").strip()
        if not word:
            self.error = "Please enter a word"
            return False

        async with self._in_flight("loading"):
            ok, result = await self._call(
                "Failed to analyze word",
                self.backend.analyze, word, self.learning_language, self.native_language,
            )
        if not ok or self._superseded(stage):
            return False

        self.stage = AnalysisStage(word=word, analysis=result.analysis, phonetics=result.phonetics)
        return True

    # -- analysis ---------------------------------------------------------

    def confirm_analysis(self) -> bool:
        stage = self._expect(AnalysisStage)
        if self._ignored_while_busy():
            return False
        self.stage = ChunkingStage(word=stage.word, analysis=stage.analysis, phonetics=stage.phonetics)
        return True

    # -- chunking ---------------------------------------------------------

    async def customize_chunking(self, instructions: str) -> bool:
        stage = self._expect(ChunkingStage)
        if self._ignored_while_busy() or not self._require_instructions(instructions):
            return False

        async with self._in_flight("loading"):
            ok, phonetics = await self._call(
                "Failed to customize chunking",
                self.backend.customize_chunking,
                stage.word,
                self.learning_language,
                self.native_language,
                instructions.strip(),
                current_chunks=stage.phonetics.chunks,
            )
        if not ok or self._superseded(stage):
            return False

        self.stage = replace(stage, phonetics=phonetics)
        return True

    async def confirm_chunking(self) -> bool:
        stage = self._expect(ChunkingStage)
        if self._ignored_while_busy():
            return False

        async with self._in_flight("loading"):
            ok, candidates = await self._call(
                "Failed to generate anchors",
                self.backend.generate_anchors, stage.word, stage.phonetics, self.native_language,
            )
        if not ok or self._superseded(stage):
            return False

        self.stage = AnchorsStage(
            word=stage.word,
            analysis=stage.analysis,
            phonetics=stage.phonetics,
            anchor_candidates=tuple(candidates),
            selected_anchors=auto_select(candidates),
        )
        return True

    # -- anchors ----------------------------------------------------------

    def select_anchor(self, chunk: str, candidate: AnchorCandidate) -> bool:
        """Choose the anchor for one chunk, replacing any earlier choice for it."""
        stage = self._expect(AnchorsStage)
        if chunk not in stage.chunks:
            raise KeyError(chunk)
        if self._ignored_while_busy():
            return False

        selected = dict(stage.selected_anchors)
        selected[chunk] = Anchor(
            chunk=chunk,
            anchor_word=candidate.word,
            score=candidate.phonetic_similarity,
            reason=USER_SELECTED_REASON,
        )
        self.stage = replace(stage, selected_anchors=selected)
        return True

    async def customize_anchors(self, instructions: str) -> bool:
        stage = self._expect(AnchorsStage)
        if self._ignored_while_busy() or not self._require_instructions(instructions):
            return False

        async with self._in_flight("loading"):
            ok, candidates = await self._call(
                "Failed to customize anchors",
                self.backend.generate_anchors,
                stage.word,
                stage.phonetics,
                self.native_language,
                custom_instructions=instructions.strip(),
                current_anchors=stage.ordered_anchors(),
            )
        if not ok or self._superseded(stage):
            return False

        self.stage = replace(
            stage,
            anchor_candidates=tuple(candidates),
            selected_anchors=auto_select(candidates),
        )
        return True

    async def confirm_anchors(self) -> bool:
        stage = self._expect(AnchorsStage)
        if self._ignored_while_busy():
            return False
        if not stage.chunks:
            self.error = "No anchor candidates yet. Customize the anchors to get some."
            return False
        missing = stage.missing_chunks
        if missing:
            self.error = "Select an anchor for every chunk: " + ", ".join(missing)
            return False

        anchors = stage.ordered_anchors()
        async with self._in_flight("loading"):
            ok, result = await self._call(
                "Failed to build scene",
                self.backend.build_scene, stage.word, stage.analysis, anchors, self.native_language,
            )
        if not ok or self._superseded(stage):
            return False

        self.stage = SceneStage(
            word=stage.word,
            analysis=stage.analysis,
            phonetics=stage.phonetics,
            anchor_candidates=stage.anchor_candidates,
            selected_anchors={anchor.chunk: anchor for anchor in anchors},
            scene=result.scene,
            image_prompt=result.image_prompt,
        )
        return True

    # -- scene ------------------------------------------------------------

    async def customize_scene(self, instructions: str) -> bool:
        stage = self._expect(SceneStage)
        if self._ignored_while_busy() or not self._require_instructions(instructions):
            return False

        async with self._in_flight("loading"):
            ok, result = await self._call(
                "Failed to customize scene",
                self.backend.build_scene,
                stage.word,
                stage.analysis,
                list(stage.selected_anchors.values()),
                self.native_language,
                custom_instructions=instructions.strip(),
                current_scene=stage.scene,
            )
        if not ok or self._superseded(stage):
            return False

        self.stage = replace(stage, scene=result.scene, image_prompt=result.image_prompt)
        return True

    async def confirm_scene(self) -> bool:
        """Move to the image step and start generating the image right away."""
        stage = self._expect(SceneStage)
        if self._ignored_while_busy():
            return False

        self.stage = ImageStage(
            word=stage.word,
            analysis=stage.analysis,
            phonetics=stage.phonetics,
            anchor_candidates=stage.anchor_candidates,
            selected_anchors=stage.selected_anchors,
            scene=stage.scene,
            image_prompt=stage.image_prompt,
        )
        await self.generate_image()
        return True

    # -- image ------------------------------------------------------------

    async def generate_image(self) -> bool:
        """(Re)generate the image from the current prompt."""
        self._expect(ImageStage)
        if self._ignored_while_busy():
            return False
        async with self._in_flight("generating"):
            return await self._produce_image("Failed to generate image")

    async def customize_image(self, instructions: str) -> bool:
        """
        Regenerate the image following extra instructions.

        The backend answers either with an image or with a rewritten prompt;
        a rewritten prompt replaces the current one and is generated from.
        """
        self._expect(ImageStage)
        if self._ignored_while_busy() or not self._require_instructions(instructions):
            return False
        async with self._in_flight("generating"):
            return await self._produce_image("Failed to customize image", instructions.strip())

    async def _produce_image(self, failure: str, custom_instructions: Optional[str] = None) -> bool:
        stage = self.stage
        prompt = stage.image_prompt
        ok, result = await self._call(
            failure,
            self.backend.generate_image, prompt.prompt, prompt.negative_prompt, custom_instructions,
        )

        enhancements = 0
        while ok and not result.image_url:
            if self._superseded(stage):
                return False
            if not result.enhanced_prompt:
                self.error = f"{failure}. Please try again."
                return False
            if enhancements >= self.max_prompt_enhancements:
                logger.warning(f"Gave up after {enhancements} rewritten image prompts")
                self.error = "The image prompt kept changing without producing an image. Please try again."
                return False
            enhancements += 1

            prompt = ImagePrompt(prompt=result.enhanced_prompt, negative_prompt=prompt.negative_prompt)
            stage = replace(stage, image_prompt=prompt)
            self.stage = stage
            ok, result = await self._call(
                failure,
                self.backend.generate_image, prompt.prompt, prompt.negative_prompt,
            )

        if not ok or self._superseded(stage):
            return False
        self.stage = replace(stage, image_url=result.image_url)
        return True

    async def confirm_image(self) -> bool:
        """Save the finished card. Disabled while there is no image or one is being generated."""
        stage = self._expect(ImageStage)
        if self._ignored_while_busy() or not stage.image_url:
            return False

        anchors = list(stage.selected_anchors.values())
        card = CardCreate(
            word=stage.word,
            analysis=stage.analysis,
            phonetics=stage.phonetics,
            anchors=anchors,
            scene=stage.scene,
            image_prompt=stage.image_prompt,
            image_url=stage.image_url,
            learning_language=self.learning_language,
            native_language=self.native_language,
        )
        async with self._in_flight("loading"):
            ok, saved = await self._call("Failed to save card", self.backend.create_card, card)
        if not ok or self._superseded(stage):
            return False

        self.stage = CompleteStage(
            word=stage.word,
            analysis=stage.analysis,
            anchors=tuple(anchors),
            image_url=stage.image_url,
            card_id=(saved or {}).get("id"),
        )
        return True

    # -- navigation -------------------------------------------------------

    def back(self) -> bool:
        """Return to the previous step; from the analysis step this starts over."""
        stage = self._expect(AnalysisStage, ChunkingStage, AnchorsStage, SceneStage)
        if self._ignored_while_busy():
            return False

        self.error = None
        if isinstance(stage, AnalysisStage):
            self.reset()
        elif isinstance(stage, ChunkingStage):
            self.stage = AnalysisStage(word=stage.word, analysis=stage.analysis, phonetics=stage.phonetics)
        elif isinstance(stage, AnchorsStage):
            self.stage = ChunkingStage(word=stage.word, analysis=stage.analysis, phonetics=stage.phonetics)
        else:
            self.stage = AnchorsStage(
                word=stage.word,
                analysis=stage.analysis,
                phonetics=stage.phonetics,
                anchor_candidates=stage.anchor_candidates,
                selected_anchors=dict(stage.selected_anchors),
            )
        return True

    def reset(self) -> None:
        """Drop everything and start over at the input step."""
        self.stage = InputStage()
        self.error = None
