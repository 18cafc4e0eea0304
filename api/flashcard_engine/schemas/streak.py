"""
Streak schemas.
"""
from pydantic import BaseModel, Field
from typing import List
from datetime import date


class DailyPoints(BaseModel):
    date: date
    points: int


class StreakResponse(BaseModel):
    """Daily points and streak statistics of a user."""
    user_id: int
    current_streak: int = Field(..., description="Consecutive active days ending today (0 if inactive today)")
    longest_streak: int = Field(..., description="Longest run of consecutive active days ever")
    daily_points: List[DailyPoints] = Field(..., description="Points per day, newest first")
