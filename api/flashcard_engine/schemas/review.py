"""
Review and answer schemas.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from flashcard_engine.models.enums import CardSide, FlashcardStatus


class ReviewRequest(BaseModel):
    """Self-graded review of one card side."""
    user_id: int = Field(..., description="User ID")
    rating: int = Field(..., description="1 = again, 2 = hard, 3 = good, 4 = easy")
    card_side: CardSide = Field(CardSide.DIRECT, description="Reviewed side: 'direct' or 'reverse'")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 1,
                "rating": 3,
                "card_side": "direct"
            }
        }


class AnswerRequest(BaseModel):
    """Free-text answer to one card side."""
    user_id: int = Field(..., description="User ID")
    card_side: CardSide = Field(CardSide.DIRECT, description="Answered side")
    answer: str = Field(..., description="Answer typed by the learner")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": 1,
                "card_side": "reverse",
                "answer": "klama"
            }
        }


class UserRequest(BaseModel):
    """Request carrying only the acting user."""
    user_id: int = Field(..., description="User ID")


class ProgressResponse(BaseModel):
    """Live progress of one card side."""
    flashcard_id: int
    card_side: CardSide
    status: FlashcardStatus
    stability: float
    difficulty: float
    interval: int
    review_count: int
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    """Result of a review."""
    progress: ProgressResponse
    auto_progressed: List[ProgressResponse] = Field(default_factory=list, description="Related cards credited by this review")


class AnswerResponse(BaseModel):
    """Result of grading a free-text answer."""
    correct: bool = Field(..., description="Whether the answer was accepted")
    expected: str = Field(..., description="Normalized expected answer")
    message: str
    next_review: Optional[datetime] = Field(None, description="Next review of the side, None when not rescheduled")
    is_free_content: bool
    similarity: Optional[float] = Field(None, description="Similarity in [0, 1] (fill-in only)")
    rating: Optional[int] = Field(None, description="Rating applied to the review, None when not rescheduled")
