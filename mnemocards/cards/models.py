from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, JSON, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mnemocards.database import Base
from mnemocards.study.scheduler import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
    Rating,
    ReviewState,
    next_state,
)


class Card(Base):
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    word = Column(String(255), nullable=False)
    pos = Column(String(20), nullable=True)
    ipa = Column(String(255), nullable=True)
    translation = Column(String(255), nullable=True)
    learning_language = Column(String(10), nullable=True)
    native_language = Column(String(10), nullable=True)

    # Raw outputs of the creation pipeline
    analysis = Column(JSON, nullable=False)
    phonetics = Column(JSON, nullable=True)
    scene = Column(JSON, nullable=True)
    image_prompt = Column(JSON, nullable=True)

    image_url = Column(Text, nullable=True)  # may be a base64 data URL
    audio_url = Column(Text, nullable=True)
    example = Column(Text, nullable=True)
    example_translation = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    owner = relationship("User", back_populates="cards")
    anchors = relationship("CardAnchor", back_populates="card", cascade="all, delete-orphan")
    bindings = relationship("CardBinding", back_populates="card", cascade="all, delete-orphan")
    reviews = relationship("ReviewRecord", back_populates="card", cascade="all, delete-orphan")


class CardAnchor(Base):
    """A native-language word standing in for one phonetic chunk of the card's word."""
    __tablename__ = "card_anchors"

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    chunk = Column(String(100), nullable=False)
    chunk_ipa = Column(String(100), nullable=True)
    anchor_word = Column(String(255), nullable=False)
    score = Column(Float, nullable=True)
    reason = Column(String(255), nullable=True)

    card = relationship("Card", back_populates="anchors")


class CardBinding(Base):
    __tablename__ = "card_bindings"

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    anchor = Column(String(255), nullable=False)
    relation = Column(String(50), nullable=False)
    target = Column(String(255), nullable=False)

    card = relationship("Card", back_populates="bindings")


class ReviewRecord(Base):
    """
    Spaced repetition progress of one user on one card.
    """
    __tablename__ = "review_records"
    __table_args__ = (
        CheckConstraint("ease_factor >= 1.3", name="ck_review_records_min_ease"),
        CheckConstraint("interval_days >= 1", name="ck_review_records_min_interval"),
    )

    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(Integer, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # SM-2 Algorithm fields
    repetitions = Column(Integer, default=0, nullable=False)  # Consecutive successful reviews
    ease_factor = Column(Float, default=DEFAULT_EASE_FACTOR, nullable=False)
    interval_days = Column(Integer, default=DEFAULT_INTERVAL_DAYS, nullable=False)

    # Review scheduling
    next_review = Column(DateTime(timezone=True), nullable=False, index=True)
    last_reviewed = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    card = relationship("Card", back_populates="reviews")
    user = relationship("User")

    def to_state(self) -> ReviewState:
        return ReviewState(
            repetitions=self.repetitions,
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            next_review=self.next_review,
            last_reviewed=self.last_reviewed,
        )

    def schedule(self, rating: Rating, now: Optional[datetime] = None) -> ReviewState:
        """
        Apply a rating to this record in place.

        Returns:
            The new ReviewState (already copied onto the record).
        """
        state = next_state(self.to_state(), rating, now=now)
        self.repetitions = state.repetitions
        self.ease_factor = state.ease_factor
        self.interval_days = state.interval_days
        self.next_review = state.next_review
        self.last_reviewed = state.last_reviewed
        return state
