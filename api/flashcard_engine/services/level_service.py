"""
Level service.

Levels group a collection's flashcards into ordered steps. A level is
unlocked for a user once all of its direct prerequisites are completed.
Every graded review of a card in a level updates the user's level progress.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlmodel import Session, select, func

from flashcard_engine.core.exceptions import AccessDeniedError, ConflictError, InvalidArgumentError, NotFoundError
from flashcard_engine.models.enums import FlashcardStatus
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.flashcard_level import FlashcardLevel
from flashcard_engine.models.flashcard_level_item import FlashcardLevelItem
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.level_prerequisite import LevelPrerequisite
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.models.user_level_progress import UserLevelProgress
from flashcard_engine.schemas.level import (
    CreateLevelRequest,
    UpdateLevelRequest,
    LevelCardResponse,
    LevelCardsResponse,
    LevelPrerequisiteResponse,
    LevelProgressResponse,
    LevelResponse,
)
from flashcard_engine.services import access_service
from flashcard_engine.services.content_service import resolve_card_content
from flashcard_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_MIN_CARDS = 5
DEFAULT_MIN_SUCCESS_RATE = 0.8
COMPLETED_STATUSES = (FlashcardStatus.REVIEW, FlashcardStatus.GRADUATED)


def _success_rate(correct: int, total: int) -> float:
    return correct / total if total > 0 else 0.0


def _set_prerequisites(session: Session, level: FlashcardLevel, prerequisite_ids: List[int]) -> None:
    """Replace the prerequisite edges of a level."""
    for edge in session.exec(select(LevelPrerequisite).where(LevelPrerequisite.level_id == level.id)).all():
        session.delete(edge)
    session.flush()

    for prerequisite_id in dict.fromkeys(prerequisite_ids):
        if prerequisite_id == level.id:
            raise InvalidArgumentError(f"Level {level.id} cannot be its own prerequisite")
        prerequisite = access_service.get_level(session, prerequisite_id)
        if prerequisite.collection_id != level.collection_id:
            raise InvalidArgumentError(
                f"Prerequisite level {prerequisite_id} belongs to another collection"
            )
        session.add(LevelPrerequisite(level_id=level.id, prerequisite_id=prerequisite_id))
    session.flush()


def _owned_level(session: Session, level_id: int, user_id: int) -> FlashcardLevel:
    level = access_service.get_level(session, level_id)
    access_service.verify_collection_ownership(session, level.collection_id, user_id)
    return level


def get_level_details(session: Session, level_id: int, user_id: int) -> LevelResponse:
    """
    Build the aggregate view of a level for a user.

    Args:
        session: Database session
        level_id: Level ID
        user_id: Requesting user ID

    Returns:
        LevelResponse with card count, prerequisites, progress and lock state
    """
    level = access_service.get_level(session, level_id)

    card_count = session.exec(
        select(func.count()).select_from(FlashcardLevelItem).where(FlashcardLevelItem.level_id == level_id)
    ).one()

    prerequisites = []
    rows = session.exec(
        select(FlashcardLevel, UserLevelProgress.completed_at)
        .join(LevelPrerequisite, LevelPrerequisite.prerequisite_id == FlashcardLevel.id)
        .outerjoin(
            UserLevelProgress,
            (UserLevelProgress.level_id == FlashcardLevel.id) & (UserLevelProgress.user_id == user_id)
        )
        .where(LevelPrerequisite.level_id == level_id)
        .order_by(FlashcardLevel.position, FlashcardLevel.id)
    ).all()
    for prerequisite, completed_at in rows:
        prerequisites.append(LevelPrerequisiteResponse(
            level_id=prerequisite.id,
            name=prerequisite.name,
            is_completed=completed_at is not None,
        ))

    progress = session.get(UserLevelProgress, (user_id, level_id))
    progress_response = None
    if progress:
        progress_response = LevelProgressResponse(
            cards_completed=progress.cards_completed,
            correct_answers=progress.correct_answers,
            total_answers=progress.total_answers,
            success_rate=_success_rate(progress.correct_answers, progress.total_answers),
            unlocked_at=progress.unlocked_at,
            completed_at=progress.completed_at,
            last_activity_at=progress.last_activity_at,
        )

    return LevelResponse(
        level_id=level.id,
        collection_id=level.collection_id,
        name=level.name,
        description=level.description,
        min_cards=level.min_cards,
        min_success_rate=level.min_success_rate,
        position=level.position,
        created_at=level.created_at,
        card_count=card_count,
        prerequisites=prerequisites,
        progress=progress_response,
        is_locked=not all(p.is_completed for p in prerequisites),
        is_started=progress is not None and progress.total_answers > 0,
    )


def create_level(
    session: Session,
    collection_id: int,
    user_id: int,
    request: CreateLevelRequest
) -> LevelResponse:
    """
    Create a level in a collection owned by the user.

    Raises:
        AccessDeniedError: If the user does not own the collection
        InvalidArgumentError: If a prerequisite is invalid
    """
    access_service.verify_collection_ownership(session, collection_id, user_id)

    position = request.position
    if position is None:
        max_position = session.exec(
            select(func.max(FlashcardLevel.position)).where(FlashcardLevel.collection_id == collection_id)
        ).one()
        position = 0 if max_position is None else max_position + 1

    level = FlashcardLevel(
        collection_id=collection_id,
        name=request.name,
        description=request.description,
        min_cards=request.min_cards if request.min_cards is not None else DEFAULT_MIN_CARDS,
        min_success_rate=(
            request.min_success_rate if request.min_success_rate is not None else DEFAULT_MIN_SUCCESS_RATE
        ),
        position=position,
    )
    session.add(level)
    session.flush()

    if request.prerequisite_ids:
        _set_prerequisites(session, level, request.prerequisite_ids)

    logger.info(f"Created level {level.id} '{level.name}' in collection {collection_id}")
    return get_level_details(session, level.id, user_id)


def update_level(
    session: Session,
    level_id: int,
    user_id: int,
    request: UpdateLevelRequest
) -> LevelResponse:
    """Partially update a level; prerequisites are replaced only when given."""
    level = _owned_level(session, level_id, user_id)

    if request.name is not None:
        level.name = request.name
    if request.description is not None:
        level.description = request.description
    if request.min_cards is not None:
        level.min_cards = request.min_cards
    if request.min_success_rate is not None:
        level.min_success_rate = request.min_success_rate
    if request.position is not None:
        level.position = request.position
    session.add(level)
    session.flush()

    if request.prerequisite_ids is not None:
        _set_prerequisites(session, level, request.prerequisite_ids)

    logger.info(f"Updated level {level_id}")
    return get_level_details(session, level_id, user_id)


def delete_level(session: Session, level_id: int, user_id: int) -> None:
    """
    Delete a level with its card assignments, edges and user progress.

    Raises:
        ConflictError: If another level depends on this one
    """
    _owned_level(session, level_id, user_id)

    dependents = session.exec(
        select(LevelPrerequisite.level_id).where(LevelPrerequisite.prerequisite_id == level_id)
    ).all()
    if dependents:
        raise ConflictError(
            f"Level {level_id} is a prerequisite of levels {sorted(dependents)} and cannot be deleted"
        )

    for item in session.exec(select(FlashcardLevelItem).where(FlashcardLevelItem.level_id == level_id)).all():
        session.delete(item)
    for edge in session.exec(select(LevelPrerequisite).where(LevelPrerequisite.level_id == level_id)).all():
        session.delete(edge)
    for progress in session.exec(select(UserLevelProgress).where(UserLevelProgress.level_id == level_id)).all():
        session.delete(progress)
    session.flush()

    session.delete(session.get(FlashcardLevel, level_id))
    session.flush()
    logger.info(f"Deleted level {level_id}")


def get_collection_levels(session: Session, collection_id: int, user_id: int) -> List[LevelResponse]:
    """All levels of a collection in position order."""
    access_service.verify_collection_access(session, collection_id, user_id)
    level_ids = session.exec(
        select(FlashcardLevel.id)
        .where(FlashcardLevel.collection_id == collection_id)
        .order_by(FlashcardLevel.position, FlashcardLevel.id)
    ).all()
    return [get_level_details(session, level_id, user_id) for level_id in level_ids]


def add_cards_to_level(
    session: Session,
    level_id: int,
    user_id: int,
    flashcard_ids: List[int],
    start_position: Optional[int] = None
) -> LevelResponse:
    """
    Assign flashcards to a level at consecutive positions.

    Cards already in the level are moved to their new position.

    Raises:
        InvalidArgumentError: If a flashcard belongs to another collection
    """
    level = _owned_level(session, level_id, user_id)

    if start_position is None:
        max_position = session.exec(
            select(func.max(FlashcardLevelItem.position)).where(FlashcardLevelItem.level_id == level_id)
        ).one()
        start_position = 0 if max_position is None else max_position + 1

    for offset, flashcard_id in enumerate(flashcard_ids):
        flashcard = access_service.get_flashcard(session, flashcard_id)
        if flashcard.collection_id != level.collection_id:
            raise InvalidArgumentError(
                f"Flashcard {flashcard_id} does not belong to collection {level.collection_id}"
            )
        item = session.get(FlashcardLevelItem, (level_id, flashcard_id))
        if item is None:
            item = FlashcardLevelItem(level_id=level_id, flashcard_id=flashcard_id)
        item.position = start_position + offset
        session.add(item)

    session.flush()
    logger.info(f"Added {len(flashcard_ids)} flashcards to level {level_id}")
    return get_level_details(session, level_id, user_id)


def remove_card_from_level(session: Session, level_id: int, flashcard_id: int, user_id: int) -> None:
    """Remove a card from a level and renumber the remaining cards from 0."""
    _owned_level(session, level_id, user_id)

    item = session.get(FlashcardLevelItem, (level_id, flashcard_id))
    if not item:
        raise NotFoundError(f"Flashcard {flashcard_id} is not in level {level_id}")
    session.delete(item)
    session.flush()

    remaining = session.exec(
        select(FlashcardLevelItem)
        .where(FlashcardLevelItem.level_id == level_id)
        .order_by(FlashcardLevelItem.position)
    ).all()
    for position, remaining_item in enumerate(remaining):
        remaining_item.position = position
        session.add(remaining_item)
    session.flush()
    logger.info(f"Removed flashcard {flashcard_id} from level {level_id}")


def get_level_cards(
    session: Session,
    level_id: int,
    user_id: int,
    page: int = 1,
    per_page: int = 20
) -> LevelCardsResponse:
    """
    Paginated cards of a level with the user's attempt statistics.

    Raises:
        AccessDeniedError: If the level is locked for the user
    """
    if page < 1 or per_page < 1:
        raise InvalidArgumentError("page and per_page must be positive")

    level = access_service.get_level(session, level_id)
    access_service.verify_collection_access(session, level.collection_id, user_id)
    if not access_service.is_level_unlocked(session, user_id, level_id):
        raise AccessDeniedError(f"Level {level_id} is locked. Complete prerequisites first.")

    total = session.exec(
        select(func.count()).select_from(FlashcardLevelItem).where(FlashcardLevelItem.level_id == level_id)
    ).one()

    rows = session.exec(
        select(FlashcardLevelItem, Flashcard)
        .join(Flashcard, Flashcard.id == FlashcardLevelItem.flashcard_id)
        .where(FlashcardLevelItem.level_id == level_id)
        .order_by(FlashcardLevelItem.position, Flashcard.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()

    attempts = _attempt_counts(session, user_id, [flashcard.id for _, flashcard in rows])

    cards = []
    for item, flashcard in rows:
        content = resolve_card_content(session, flashcard)
        correct, total_attempts = attempts.get(flashcard.id, (0, 0))
        status = session.exec(
            select(UserFlashcardProgress.status)
            .where(
                UserFlashcardProgress.user_id == user_id,
                UserFlashcardProgress.flashcard_id == flashcard.id,
                UserFlashcardProgress.archived == False  # noqa: E712
            )
            .order_by(UserFlashcardProgress.card_side)
        ).first()
        cards.append(LevelCardResponse(
            flashcard_id=flashcard.id,
            position=item.position,
            direction=flashcard.direction,
            word=content.word,
            definition=content.definition,
            free_content_front=content.free_content_front,
            free_content_back=content.free_content_back,
            status=status,
            correct_attempts=correct,
            total_attempts=total_attempts,
            success_rate=_success_rate(correct, total_attempts),
        ))

    return LevelCardsResponse(level_id=level_id, cards=cards, total=total, page=page, per_page=per_page)


def _attempt_counts(session: Session, user_id: int, flashcard_ids: List[int]) -> Dict[int, tuple]:
    """(correct, total) review counts per flashcard; correct means rating >= 3."""
    if not flashcard_ids:
        return {}
    ratings = session.exec(
        select(FlashcardReviewHistory.flashcard_id, FlashcardReviewHistory.rating).where(
            FlashcardReviewHistory.user_id == user_id,
            FlashcardReviewHistory.flashcard_id.in_(flashcard_ids)  # type: ignore
        )
    ).all()
    counts: Dict[int, tuple] = {}
    for flashcard_id, rating in ratings:
        correct, total = counts.get(flashcard_id, (0, 0))
        counts[flashcard_id] = (correct + (1 if rating >= 3 else 0), total + 1)
    return counts


def _count_completed_cards(session: Session, user_id: int, level_id: int) -> int:
    """Cards of the level whose every live side is in Review or Graduated."""
    flashcard_ids = session.exec(
        select(FlashcardLevelItem.flashcard_id).where(FlashcardLevelItem.level_id == level_id)
    ).all()

    completed = 0
    for flashcard_id in flashcard_ids:
        statuses = session.exec(
            select(UserFlashcardProgress.status).where(
                UserFlashcardProgress.user_id == user_id,
                UserFlashcardProgress.flashcard_id == flashcard_id,
                UserFlashcardProgress.archived == False  # noqa: E712
            )
        ).all()
        if statuses and all(status in COMPLETED_STATUSES for status in statuses):
            completed += 1
    return completed


def record_level_answer(
    session: Session,
    user_id: int,
    flashcard_id: int,
    rating: int,
    now: Optional[datetime] = None
) -> List[UserLevelProgress]:
    """
    Update the user's progress on every level containing the card.

    Must run after the review's progress row has been written so that
    cards_completed reflects the new status.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard_id: Reviewed flashcard
        rating: Review rating (>= 3 counts as correct)
        now: Review time (defaults to utcnow)

    Returns:
        The updated level progress rows
    """
    if now is None:
        now = utcnow()

    updated = []
    for level_id in access_service.get_flashcard_level_ids(session, flashcard_id):
        level = session.get(FlashcardLevel, level_id)
        progress = session.get(UserLevelProgress, (user_id, level_id))
        if progress is None:
            progress = UserLevelProgress(user_id=user_id, level_id=level_id, unlocked_at=now)

        progress.total_answers += 1
        if rating >= 3:
            progress.correct_answers += 1
        progress.cards_completed = _count_completed_cards(session, user_id, level_id)
        progress.last_activity_at = now

        if (
            progress.completed_at is None
            and progress.cards_completed >= level.min_cards
            and _success_rate(progress.correct_answers, progress.total_answers) >= level.min_success_rate
        ):
            progress.completed_at = now
            logger.info(f"User {user_id} completed level {level_id}")

        session.add(progress)
        updated.append(progress)

    if updated:
        session.flush()
    return updated
