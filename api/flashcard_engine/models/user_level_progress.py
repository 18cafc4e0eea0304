"""
UserLevelProgress model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from flashcard_engine.utils.time_utils import utcnow


class UserLevelProgress(SQLModel, table=True):
    """UserLevelProgress table - per-user aggregate activity on a level."""
    __tablename__ = "user_level_progress"

    user_id: int = Field(primary_key=True)
    level_id: int = Field(foreign_key="flashcard_level.id", primary_key=True)
    cards_completed: int = Field(default=0)
    correct_answers: int = Field(default=0)
    total_answers: int = Field(default=0)
    unlocked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: datetime = Field(default_factory=utcnow)
