import logging
from typing import Dict, List, Optional, Tuple
from datetime import datetime

from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from mnemocards.cards.models import Card, ReviewRecord
from mnemocards.study.scheduler import Rating, ReviewState

logger = logging.getLogger(__name__)


class StudyService:
    """Service for reviewing due cards with spaced repetition."""

    @staticmethod
    def get_due_reviews(
        user_id: int,
        db: Session,
        limit: int = 10,
        now: Optional[datetime] = None
    ) -> Tuple[List[ReviewRecord], int]:
        """
        Get the review records due for a user.

        Returns:
            (records, due_count) where records holds at most ``limit`` records,
            oldest due first, and due_count counts all due records.
        """
        now = now or datetime.now()
        query = db.query(ReviewRecord).filter(
            ReviewRecord.user_id == user_id,
            ReviewRecord.next_review <= now
        )

        due_count = query.count()
        records = (
            query.options(joinedload(ReviewRecord.card))
            .order_by(ReviewRecord.next_review.asc(), ReviewRecord.id.asc())
            .limit(limit)
            .all()
        )
        return records, due_count

    @staticmethod
    def get_study_stats(user_id: int, db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Get study statistics for a user.

        Returns:
            {
                "total_cards": count of the user's cards,
                "due": count of cards due for review,
                "reviewed_today": count of cards rated today
            }
        """
        now = now or datetime.now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        total_cards = db.query(func.count(Card.id)).filter(Card.user_id == user_id).scalar() or 0

        due = db.query(func.count(ReviewRecord.id)).filter(
            ReviewRecord.user_id == user_id,
            ReviewRecord.next_review <= now
        ).scalar() or 0

        reviewed_today = db.query(func.count(ReviewRecord.id)).filter(
            ReviewRecord.user_id == user_id,
            ReviewRecord.last_reviewed >= today_start
        ).scalar() or 0

        return {
            "total_cards": total_cards,
            "due": due,
            "reviewed_today": reviewed_today
        }

    @staticmethod
    def submit_review(
        review: ReviewRecord,
        rating: Rating,
        db: Session,
        now: Optional[datetime] = None
    ) -> ReviewState:
        """
        Rate a review record and persist the new schedule.

        Args:
            review: The user's review record for the card
            rating: Rating chosen by the user
            db: Database session
            now: Review time (defaults to now)

        Returns:
            The new scheduling state
        """
        state = review.schedule(rating, now=now)
        db.commit()
        db.refresh(review)

        logger.info(
            f"Review {review.id} rated {rating.value}: next in {state.interval_days} days "
            f"(ease {state.ease_factor:.2f}, reps {state.repetitions})"
        )
        return state
