"""
FlashcardLevelItem model.
"""
from sqlmodel import SQLModel, Field


class FlashcardLevelItem(SQLModel, table=True):
    """FlashcardLevelItem table - assigns a flashcard to a level at a position."""
    __tablename__ = "flashcard_level_item"

    level_id: int = Field(foreign_key="flashcard_level.id", primary_key=True)
    flashcard_id: int = Field(foreign_key="flashcard.id", primary_key=True)
    position: int = Field(default=0)
