"""
UserFlashcardProgress model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Index, text
from typing import Optional
from datetime import datetime

from flashcard_engine.models.enums import CardSide, FlashcardStatus
from flashcard_engine.utils.time_utils import utcnow


class UserFlashcardProgress(SQLModel, table=True):
    """UserFlashcardProgress table - memorization state of one user on one card side."""
    __tablename__ = "user_flashcard_progress"
    # At most one live row per (user, flashcard, side); archived rows keep history
    __table_args__ = (
        Index(
            "uq_user_flashcard_progress_active",
            "user_id",
            "flashcard_id",
            "card_side",
            unique=True,
            sqlite_where=text("archived = 0"),
            postgresql_where=text("NOT archived"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    flashcard_id: int = Field(foreign_key="flashcard.id", index=True)
    card_side: CardSide
    status: FlashcardStatus = Field(default=FlashcardStatus.NEW)
    stability: float = Field(default=0.0)
    difficulty: float = Field(default=0.0)
    interval: int = Field(default=0)  # Days until due
    review_count: int = Field(default=0)
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None  # None = nothing scheduled
    archived: bool = Field(default=False)
    created_time: datetime = Field(default_factory=utcnow)
