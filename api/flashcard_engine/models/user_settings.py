"""
UserSettings model.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class UserSettings(SQLModel, table=True):
    """UserSettings table - cached per-user scheduling parameters."""
    __tablename__ = "user_settings"

    user_id: int = Field(primary_key=True)
    optimal_retention: Optional[float] = None
    last_calculated: Optional[datetime] = None
