"""
Flashcard schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.schemas.quiz import QuizQuestionResponse
from flashcard_engine.schemas.review import ProgressResponse


class CreateFlashcardRequest(BaseModel):
    """Request to add a flashcard to a collection.

    Either definition_id alone, or both free-content sides, must be given.
    """
    user_id: int = Field(..., description="User ID (must own the collection)")
    definition_id: Optional[int] = Field(None, description="Dictionary definition to link")
    free_content_front: Optional[str] = Field(None, description="Free-text front side")
    free_content_back: Optional[str] = Field(None, description="Free-text back side")
    notes: Optional[str] = Field(None, description="Learner notes")
    direction: FlashcardDirection = Field(FlashcardDirection.BOTH, description="Card direction")
    auto_progress: bool = Field(True, description="Whether related words may credit this card")
    correct_answer_text: Optional[str] = Field(None, description="Quiz answer override (quiz directions only)")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 1,
                "free_content_front": "klama",
                "free_content_back": "to go; to come",
                "direction": "fillin"
            }
        }


class FlashcardResponse(BaseModel):
    """A flashcard with the requesting user's progress."""
    flashcard_id: int
    collection_id: int
    item_id: int
    position: int
    direction: FlashcardDirection
    created: bool = Field(..., description="False when an existing card for the same content was returned")
    progress: List[ProgressResponse]


class SideProgress(BaseModel):
    card_side: CardSide
    status: FlashcardStatus
    interval: int
    review_count: int
    next_review_at: Optional[datetime] = Field(None, description="None when due now or never scheduled")


class FlashcardListItem(BaseModel):
    """One entry of a collection listing; grouped cards carry every side."""
    flashcard_id: int
    position: int
    direction: FlashcardDirection
    definition_id: Optional[int] = None
    word: Optional[str] = None
    definition: Optional[str] = None
    free_content_front: Optional[str] = None
    free_content_back: Optional[str] = None
    notes: Optional[str] = None
    is_free_content: bool
    sides: List[SideProgress]
    quiz: Optional[QuizQuestionResponse] = None


class FlashcardListResponse(BaseModel):
    flashcards: List[FlashcardListItem]
    total: int
    due_count: int
    page: int
    per_page: int


class UpdatePositionRequest(BaseModel):
    user_id: int = Field(..., description="User ID (must own the collection)")
    position: int = Field(..., ge=0, description="New 0-based position in the collection")


class ChangeDirectionRequest(BaseModel):
    user_id: int = Field(..., description="User ID (must own the collection)")
    direction: FlashcardDirection = Field(..., description="New direction")


class ImportResponse(BaseModel):
    """Result of importing collection items as flashcards."""
    imported: int
    skipped: int
