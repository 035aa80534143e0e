from pydantic import BaseModel, EmailStr, ConfigDict
from datetime import datetime
from typing import List, Literal, Optional


class UserPreferences(BaseModel):
    imagery: Optional[Literal["high", "medium", "low"]] = None
    preferred_modalities: Optional[List[Literal["audio", "text", "visual"]]] = None


class UserCreate(BaseModel):
    email: EmailStr
    learning_language: str = "en"
    native_language: str = "ru"


class UserSettingsUpdate(BaseModel):
    learning_language: Optional[str] = None
    native_language: Optional[str] = None
    preferences: Optional[UserPreferences] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    learning_language: str
    native_language: str
    preferences: UserPreferences = UserPreferences()
    created_at: datetime
