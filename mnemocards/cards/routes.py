from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from mnemocards.database import get_db
from mnemocards.users.utils import get_current_user
from mnemocards.users.models import User
from mnemocards.cards.models import Card
from mnemocards.cards.schemas import CardCreate, CardDetail, CardList
from mnemocards.cards.services import create_card

router = APIRouter(prefix="/cards", tags=["Cards"])


@router.post("", response_model=CardDetail, status_code=status.HTTP_201_CREATED)
async def save_card(
    card: CardCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Save the card assembled by the creation flow.

    Also schedules the card for its first review right away.
    """
    if not card.word.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )

    return create_card(card, current_user.id, db)


@router.get("", response_model=CardList)
async def get_cards(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get all cards for the current user, newest first."""
    cards = (
        db.query(Card)
        .filter(Card.user_id == current_user.id)
        .order_by(Card.created_at.desc(), Card.id.desc())
        .all()
    )
    return {"cards": cards, "total": len(cards)}


@router.get("/{card_id}", response_model=CardDetail)
async def get_card(
    card_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a specific card with its anchors and bindings."""
    card = db.query(Card).filter(Card.id == card_id, Card.user_id == current_user.id).first()
    if not card:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Card not found"
        )
    return card
