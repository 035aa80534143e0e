from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional

from mnemocards.cards.schemas import CardResponse
from mnemocards.study.scheduler import Rating


class StudyStats(BaseModel):
    """Learning progress of a user."""
    total_cards: int
    due: int
    reviewed_today: int


class ReviewSubmit(BaseModel):
    rating: Rating


class ReviewRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    card_id: int
    repetitions: int
    ease_factor: float
    interval_days: int
    next_review: datetime
    last_reviewed: Optional[datetime] = None


class DueReview(ReviewRecordResponse):
    """A due review record with the card to show."""
    card: CardResponse


class DueReviews(BaseModel):
    due_count: int
    reviews: List[DueReview]
