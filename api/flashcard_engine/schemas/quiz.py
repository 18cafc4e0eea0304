"""
Quiz schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from flashcard_engine.models.enums import CardSide, FlashcardDirection


class QuizQuestionResponse(BaseModel):
    """A multiple-choice question with four shuffled options."""
    flashcard_id: int
    direction: FlashcardDirection
    card_side: CardSide
    question: str
    options: List[str] = Field(..., description="Four options, exactly one correct")


class QuizOptionResponse(BaseModel):
    """Stored correct answer of a quiz flashcard."""
    flashcard_id: int
    correct_answer_text: str
    created_at: datetime


class QuizSubmitRequest(BaseModel):
    """Option chosen by the learner."""
    user_id: int = Field(..., description="User ID")
    card_side: CardSide = Field(..., description="Side the question was asked on")
    selected_option: str = Field(..., description="Text of the chosen option")
    presented_options: List[str] = Field(default_factory=list, description="All options that were shown")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 1,
                "card_side": "direct",
                "selected_option": "to go",
                "presented_options": ["to go", "to eat", "to sleep", "to run"]
            }
        }


class QuizSubmitResponse(BaseModel):
    correct: bool
    correct_answer: str
    rating: int
    next_review: Optional[datetime] = None
