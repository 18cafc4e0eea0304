"""
Collection model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.utils.time_utils import utcnow


class Collection(SQLModel, table=True):
    """Collection table - a user-owned deck of items, optionally public."""
    __tablename__ = "collection"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)  # Owner
    name: str
    description: Optional[str] = None
    is_public: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
