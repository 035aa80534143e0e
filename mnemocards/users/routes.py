from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from mnemocards.database import get_db
from mnemocards.users.models import User
from mnemocards.users.schemas import UserCreate, UserResponse, UserSettingsUpdate
from mnemocards.users.utils import get_current_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    db: Session = Depends(get_db)
):
    """Register a learner with their language pair."""
    existing = db.query(User).filter(User.email == user.email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    db_user = User(
        email=user.email,
        learning_language=user.learning_language,
        native_language=user.native_language,
        preferences={},
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me/settings", response_model=UserResponse)
async def update_settings(
    settings_update: UserSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update the language pair and learning preferences (onboarding / profile)."""
    update_data = settings_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return current_user
