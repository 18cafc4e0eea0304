"""
CollectionItem model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.utils.time_utils import utcnow


class CollectionItem(SQLModel, table=True):
    """CollectionItem table - content of a collection entry (dictionary link or free text)."""
    __tablename__ = "collection_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    collection_id: int = Field(foreign_key="collection.id", index=True)
    definition_id: Optional[int] = Field(default=None, foreign_key="definition.id")
    free_content_front: Optional[str] = None
    free_content_back: Optional[str] = None
    notes: Optional[str] = None
    position: int = Field(default=0)
    auto_progress: bool = Field(default=True)  # Eligible for credit from related words
    added_at: datetime = Field(default_factory=utcnow)
