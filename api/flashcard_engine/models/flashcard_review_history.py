"""
FlashcardReviewHistory model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.models.enums import CardSide, FlashcardStatus
from flashcard_engine.utils.time_utils import utcnow


class FlashcardReviewHistory(SQLModel, table=True):
    """FlashcardReviewHistory table - append-only log of graded reviews."""
    __tablename__ = "flashcard_review_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    flashcard_id: int = Field(foreign_key="flashcard.id", index=True)
    card_side: CardSide
    rating: int  # 1 = again, 2 = hard, 3 = good, 4 = easy
    elapsed_days: int = Field(default=0)
    scheduled_days: int = Field(default=0)
    stability: float  # Memory state snapshot after the review
    difficulty: float
    previous_status: FlashcardStatus = Field(default=FlashcardStatus.NEW)
    review_time: datetime = Field(default_factory=utcnow, index=True)
