"""
Flashcard model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.models.enums import FlashcardDirection
from flashcard_engine.utils.time_utils import utcnow


class Flashcard(SQLModel, table=True):
    """Flashcard table - a studyable card built from a collection item."""
    __tablename__ = "flashcard"

    id: Optional[int] = Field(default=None, primary_key=True)
    collection_id: int = Field(foreign_key="collection.id", index=True)
    item_id: int = Field(foreign_key="collection_item.id")
    position: int = Field(default=0)
    direction: FlashcardDirection = Field(default=FlashcardDirection.BOTH)
    created_at: datetime = Field(default_factory=utcnow)
