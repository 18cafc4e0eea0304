"""
Access gate for collections, flashcards and levels.
"""
import logging
from typing import List
from sqlmodel import Session, select

from flashcard_engine.core.exceptions import AccessDeniedError, NotFoundError
from flashcard_engine.models.collection import Collection
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.flashcard_level import FlashcardLevel
from flashcard_engine.models.flashcard_level_item import FlashcardLevelItem
from flashcard_engine.models.level_prerequisite import LevelPrerequisite
from flashcard_engine.models.user_level_progress import UserLevelProgress

logger = logging.getLogger(__name__)


def get_flashcard(session: Session, flashcard_id: int) -> Flashcard:
    """Get a flashcard or raise NotFoundError."""
    flashcard = session.get(Flashcard, flashcard_id)
    if not flashcard:
        raise NotFoundError(f"Flashcard with id {flashcard_id} not found")
    return flashcard


def get_collection(session: Session, collection_id: int) -> Collection:
    """Get a collection or raise NotFoundError."""
    collection = session.get(Collection, collection_id)
    if not collection:
        raise NotFoundError(f"Collection with id {collection_id} not found")
    return collection


def get_level(session: Session, level_id: int) -> FlashcardLevel:
    """Get a level or raise NotFoundError."""
    level = session.get(FlashcardLevel, level_id)
    if not level:
        raise NotFoundError(f"Level with id {level_id} not found")
    return level


def verify_collection_ownership(session: Session, collection_id: int, user_id: int) -> Collection:
    """
    Ensure the user owns the collection.

    Raises:
        NotFoundError: If the collection does not exist
        AccessDeniedError: If the user is not the owner
    """
    collection = get_collection(session, collection_id)
    if collection.user_id != user_id:
        raise AccessDeniedError(f"User {user_id} does not own collection {collection_id}")
    return collection


def verify_collection_access(session: Session, collection_id: int, user_id: int) -> Collection:
    """Ensure the collection is public or owned by the user."""
    collection = get_collection(session, collection_id)
    if not collection.is_public and collection.user_id != user_id:
        raise AccessDeniedError(f"User {user_id} cannot access collection {collection_id}")
    return collection


def is_level_unlocked(session: Session, user_id: int, level_id: int) -> bool:
    """
    Whether every direct prerequisite of the level is completed by the user.

    A level without prerequisites is always unlocked.
    """
    prerequisite_ids = session.exec(
        select(LevelPrerequisite.prerequisite_id).where(LevelPrerequisite.level_id == level_id)
    ).all()
    if not prerequisite_ids:
        return True

    completed_ids = set(session.exec(
        select(UserLevelProgress.level_id).where(
            UserLevelProgress.user_id == user_id,
            UserLevelProgress.level_id.in_(prerequisite_ids),  # type: ignore
            UserLevelProgress.completed_at.is_not(None)  # type: ignore
        )
    ).all())
    return all(prerequisite_id in completed_ids for prerequisite_id in prerequisite_ids)


def get_flashcard_level_ids(session: Session, flashcard_id: int) -> List[int]:
    """IDs of the levels a flashcard is assigned to."""
    return list(session.exec(
        select(FlashcardLevelItem.level_id).where(FlashcardLevelItem.flashcard_id == flashcard_id)
    ).all())


def verify_study_access(session: Session, flashcard: Flashcard, user_id: int) -> None:
    """
    Ensure the user may study a flashcard.

    The card's collection must be public or owned by the user, and every
    level the card belongs to must be unlocked for the user.

    Raises:
        AccessDeniedError: On a visibility or level-lock violation
    """
    verify_collection_access(session, flashcard.collection_id, user_id)

    for level_id in get_flashcard_level_ids(session, flashcard.id):
        if not is_level_unlocked(session, user_id, level_id):
            logger.warning(f"User {user_id} tried to study flashcard {flashcard.id} in locked level {level_id}")
            raise AccessDeniedError(
                f"Level {level_id} is locked. Complete prerequisites first."
            )


def can_study(session: Session, flashcard: Flashcard, user_id: int) -> bool:
    """Non-raising variant of verify_study_access."""
    collection = session.get(Collection, flashcard.collection_id)
    if not collection or (not collection.is_public and collection.user_id != user_id):
        return False
    return all(
        is_level_unlocked(session, user_id, level_id)
        for level_id in get_flashcard_level_ids(session, flashcard.id)
    )
