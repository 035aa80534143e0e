import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from mnemocards.database import get_db
from mnemocards.users.models import User

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the calling user from the X-User-Id header.

    Authentication happens upstream; this only looks the user up.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not identify user",
    )
    if x_user_id is None or not x_user_id.strip().isdigit():
        raise credentials_exception

    user = db.query(User).filter(User.id == int(x_user_id)).first()
    if user is None:
        logger.warning(f"Unknown user id in X-User-Id: {x_user_id}")
        raise credentials_exception
    return user
