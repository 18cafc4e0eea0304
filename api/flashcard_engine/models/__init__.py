"""
Models package - imports all models so they register with SQLModel metadata.
"""
# Import enums first
from flashcard_engine.models.enums import (
    FlashcardDirection,
    FlashcardStatus,
    CardSide,
    ReviewKind,
)

# Import all models
from flashcard_engine.models.collection import Collection
from flashcard_engine.models.definition import Definition
from flashcard_engine.models.collection_item import CollectionItem
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.flashcard_quiz_option import FlashcardQuizOption
from flashcard_engine.models.user_quiz_answer_history import UserQuizAnswerHistory
from flashcard_engine.models.flashcard_level import FlashcardLevel
from flashcard_engine.models.level_prerequisite import LevelPrerequisite
from flashcard_engine.models.flashcard_level_item import FlashcardLevelItem
from flashcard_engine.models.user_level_progress import UserLevelProgress
from flashcard_engine.models.user_settings import UserSettings

__all__ = [
    'FlashcardDirection',
    'FlashcardStatus',
    'CardSide',
    'ReviewKind',
    'Collection',
    'Definition',
    'CollectionItem',
    'Flashcard',
    'UserFlashcardProgress',
    'FlashcardReviewHistory',
    'FlashcardQuizOption',
    'UserQuizAnswerHistory',
    'FlashcardLevel',
    'LevelPrerequisite',
    'FlashcardLevelItem',
    'UserLevelProgress',
    'UserSettings',
]
