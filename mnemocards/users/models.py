from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mnemocards.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)

    # Language pair used by every generation call
    learning_language = Column(String(10), default="en", nullable=False)
    native_language = Column(String(10), default="ru", nullable=False)

    # {"imagery": "high|medium|low", "preferred_modalities": ["audio", "text", "visual"]}
    preferences = Column(JSON, default=dict, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    cards = relationship("Card", back_populates="owner", cascade="all, delete-orphan")
