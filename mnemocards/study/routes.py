from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from mnemocards.config import get_settings
from mnemocards.database import get_db
from mnemocards.users.utils import get_current_user
from mnemocards.users.models import User
from mnemocards.cards.models import ReviewRecord
from mnemocards.study.schemas import DueReviews, ReviewRecordResponse, ReviewSubmit, StudyStats
from mnemocards.study.study_service import StudyService

settings = get_settings()

router = APIRouter(prefix="/learn", tags=["Learn"])


@router.get("/due", response_model=DueReviews)
async def get_due_reviews(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get the cards due for review, oldest first."""
    records, due_count = StudyService.get_due_reviews(
        current_user.id, db, limit=settings.DUE_CARDS_LIMIT
    )
    return {"due_count": due_count, "reviews": records}


@router.get("/stats", response_model=StudyStats)
async def get_study_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get study statistics for the current user."""
    return StudyService.get_study_stats(current_user.id, db)


@router.post("/reviews/{review_id}", response_model=ReviewRecordResponse)
async def submit_review(
    review_id: int,
    review_submit: ReviewSubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Rate a card and reschedule it.

    - **rating**: one of "again", "hard", "good", "easy"
    """
    review = db.query(ReviewRecord).filter(
        ReviewRecord.id == review_id,
        ReviewRecord.user_id == current_user.id
    ).first()
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review record not found"
        )

    StudyService.submit_review(review, review_submit.rating, db)
    return review
