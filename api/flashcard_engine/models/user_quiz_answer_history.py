"""
UserQuizAnswerHistory model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, List
from datetime import datetime

from flashcard_engine.utils.time_utils import utcnow


class UserQuizAnswerHistory(SQLModel, table=True):
    """UserQuizAnswerHistory table - every submitted quiz option, right or wrong."""
    __tablename__ = "user_quiz_answer_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    flashcard_id: int = Field(foreign_key="flashcard.id", index=True)
    selected_option_text: str
    is_correct_selection: bool
    presented_options: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    answered_at: datetime = Field(default_factory=utcnow)
