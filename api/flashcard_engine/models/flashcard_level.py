"""
FlashcardLevel model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.utils.time_utils import utcnow


class FlashcardLevel(SQLModel, table=True):
    """FlashcardLevel table - an ordered group of cards inside a collection."""
    __tablename__ = "flashcard_level"

    id: Optional[int] = Field(default=None, primary_key=True)
    collection_id: int = Field(foreign_key="collection.id", index=True)
    name: str
    description: Optional[str] = None
    min_cards: int = Field(default=5)  # Cards to complete before the level counts as done
    min_success_rate: float = Field(default=0.8)
    position: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)
