from mnemocards.creation.backend import CreationBackend, HttpCreationBackend, StageCallError
from mnemocards.creation.pipeline import CardCreationPipeline, InvalidTransitionError, auto_select
from mnemocards.creation.states import CardCreationSession, Step

__all__ = [
    "CardCreationPipeline",
    "CardCreationSession",
    "CreationBackend",
    "HttpCreationBackend",
    "InvalidTransitionError",
    "StageCallError",
    "Step",
    "auto_select",
]
