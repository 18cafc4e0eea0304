"""
LevelPrerequisite model.
"""
from sqlmodel import SQLModel, Field


class LevelPrerequisite(SQLModel, table=True):
    """LevelPrerequisite table - DAG edge: level requires prerequisite to be completed."""
    __tablename__ = "level_prerequisite"

    level_id: int = Field(foreign_key="flashcard_level.id", primary_key=True)
    prerequisite_id: int = Field(foreign_key="flashcard_level.id", primary_key=True)
