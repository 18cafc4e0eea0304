"""
Model enums.
"""
from enum import Enum


class FlashcardDirection(str, Enum):
    """Which recall directions a flashcard trains and how it is answered."""
    DIRECT = "direct"
    REVERSE = "reverse"
    BOTH = "both"
    FILLIN = "fillin"
    FILLIN_REVERSE = "fillin_reverse"
    FILLIN_BOTH = "fillin_both"
    JUST_INFORMATION = "just_information"
    QUIZ_DIRECT = "quiz_direct"
    QUIZ_REVERSE = "quiz_reverse"
    QUIZ_BOTH = "quiz_both"


class FlashcardStatus(str, Enum):
    """Learning status of one card side."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    GRADUATED = "graduated"


class CardSide(str, Enum):
    """Recall direction tracked by a progress row."""
    DIRECT = "direct"
    REVERSE = "reverse"


class ReviewKind(str, Enum):
    """Phase tag of a review log entry."""
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


FILLIN_DIRECTIONS = (
    FlashcardDirection.FILLIN,
    FlashcardDirection.FILLIN_REVERSE,
    FlashcardDirection.FILLIN_BOTH,
)

QUIZ_DIRECTIONS = (
    FlashcardDirection.QUIZ_DIRECT,
    FlashcardDirection.QUIZ_REVERSE,
    FlashcardDirection.QUIZ_BOTH,
)
