"""
FlashcardQuizOption model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.utils.time_utils import utcnow


class FlashcardQuizOption(SQLModel, table=True):
    """FlashcardQuizOption table - cached correct answer of a quiz flashcard."""
    __tablename__ = "flashcard_quiz_option"

    id: Optional[int] = Field(default=None, primary_key=True)
    flashcard_id: int = Field(foreign_key="flashcard.id", unique=True)
    correct_answer_text: str
    created_at: datetime = Field(default_factory=utcnow)
