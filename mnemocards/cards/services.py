import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mnemocards.cards.models import Card, CardAnchor, CardBinding, ReviewRecord
from mnemocards.cards.schemas import CardCreate
from mnemocards.study.scheduler import initial_state

logger = logging.getLogger(__name__)


def create_card(payload: CardCreate, user_id: int, db: Session, now: Optional[datetime] = None) -> Card:
    """
    Persist a finished card and start its review schedule.

    The card row is committed on its own. Anchors, bindings and the initial
    review record are written afterwards; if that second write fails it is
    logged and rolled back while the card stays.
    """
    analysis = payload.analysis
    card = Card(
        user_id=user_id,
        word=analysis.normalized_word or payload.word,
        pos=analysis.pos,
        ipa=analysis.ipa,
        translation=analysis.translation,
        learning_language=payload.learning_language,
        native_language=payload.native_language,
        analysis=analysis.model_dump(),
        phonetics=payload.phonetics.model_dump() if payload.phonetics else None,
        scene=payload.scene.model_dump() if payload.scene else None,
        image_prompt=payload.image_prompt.model_dump() if payload.image_prompt else None,
        image_url=payload.image_url,
        audio_url=payload.audio_url,
        example=analysis.example_usage,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    logger.info(f"Created card {card.id} ({card.word}) for user {user_id}")

    chunk_ipa = {}
    if payload.phonetics:
        chunk_ipa = {c.chunk: c.ipa for c in payload.phonetics.chunks}

    try:
        for anchor in payload.anchors:
            db.add(CardAnchor(
                card_id=card.id,
                chunk=anchor.chunk,
                chunk_ipa=chunk_ipa.get(anchor.chunk),
                anchor_word=anchor.anchor_word,
                score=anchor.score,
                reason=anchor.reason,
            ))

        if payload.scene:
            for binding in payload.scene.bindings:
                db.add(CardBinding(
                    card_id=card.id,
                    anchor=binding.anchor,
                    relation=binding.relation,
                    target=binding.target,
                ))

        state = initial_state(now)
        db.add(ReviewRecord(
            card_id=card.id,
            user_id=user_id,
            repetitions=state.repetitions,
            ease_factor=state.ease_factor,
            interval_days=state.interval_days,
            next_review=state.next_review,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error writing anchors/bindings/progress for card {card.id}: {e}")

    db.refresh(card)
    return card
