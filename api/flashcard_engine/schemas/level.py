"""
Level schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from flashcard_engine.models.enums import FlashcardDirection, FlashcardStatus


class CreateLevelRequest(BaseModel):
    """Request to create a level in a collection."""
    name: str = Field(..., min_length=1, description="Level name")
    description: Optional[str] = Field(None, description="Level description")
    min_cards: Optional[int] = Field(None, ge=0, description="Cards to complete before the level counts as done (default 5)")
    min_success_rate: Optional[float] = Field(None, ge=0.0, le=1.0, description="Required share of correct answers (default 0.8)")
    position: Optional[int] = Field(None, ge=0, description="Position in the collection (default: after the last level)")
    prerequisite_ids: List[int] = Field(default_factory=list, description="Levels that must be completed first")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Basics",
                "description": "First words",
                "min_cards": 5,
                "min_success_rate": 0.8,
                "prerequisite_ids": []
            }
        }


class UpdateLevelRequest(BaseModel):
    """Partial update of a level. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, description="Level name")
    description: Optional[str] = Field(None, description="Level description")
    min_cards: Optional[int] = Field(None, ge=0, description="Cards to complete")
    min_success_rate: Optional[float] = Field(None, ge=0.0, le=1.0, description="Required share of correct answers")
    position: Optional[int] = Field(None, ge=0, description="Position in the collection")
    prerequisite_ids: Optional[List[int]] = Field(None, description="Replaces the prerequisite set when given")


class AddCardsToLevelRequest(BaseModel):
    """Request to assign flashcards to a level."""
    flashcard_ids: List[int] = Field(..., min_length=1, description="Flashcards to add, in order")
    start_position: Optional[int] = Field(None, ge=0, description="Position of the first card (default: after the last card)")


class LevelPrerequisiteResponse(BaseModel):
    level_id: int
    name: str
    is_completed: bool


class LevelProgressResponse(BaseModel):
    cards_completed: int
    correct_answers: int
    total_answers: int
    success_rate: float = Field(..., description="correct_answers / total_answers, 0 when unanswered")
    unlocked_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None


class LevelResponse(BaseModel):
    """Level with aggregate views for the requesting user."""
    level_id: int
    collection_id: int
    name: str
    description: Optional[str] = None
    min_cards: int
    min_success_rate: float
    position: int
    created_at: datetime
    card_count: int
    prerequisites: List[LevelPrerequisiteResponse] = Field(default_factory=list)
    progress: Optional[LevelProgressResponse] = None
    is_locked: bool
    is_started: bool


class LevelCardResponse(BaseModel):
    """A card of a level with the user's attempt statistics."""
    flashcard_id: int
    position: int
    direction: FlashcardDirection
    word: Optional[str] = None
    definition: Optional[str] = None
    free_content_front: Optional[str] = None
    free_content_back: Optional[str] = None
    status: Optional[FlashcardStatus] = None
    correct_attempts: int
    total_attempts: int
    success_rate: float


class LevelCardsResponse(BaseModel):
    level_id: int
    cards: List[LevelCardResponse]
    total: int
    page: int
    per_page: int
