"""
Progress store for per-(user, flashcard, side) memorization state.

Every live progress row is unique per (user, flashcard, card side) while not
archived. Rows are archived instead of deleted when a card's direction drops
a side, so their review history stays reachable.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlmodel import Session, select

from flashcard_engine.core.config import settings
from flashcard_engine.core.exceptions import NotFoundError
from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


DIRECTION_SIDES = {
    FlashcardDirection.DIRECT: (CardSide.DIRECT,),
    FlashcardDirection.REVERSE: (CardSide.REVERSE,),
    FlashcardDirection.BOTH: (CardSide.DIRECT, CardSide.REVERSE),
    FlashcardDirection.FILLIN: (CardSide.DIRECT,),
    FlashcardDirection.FILLIN_REVERSE: (CardSide.REVERSE,),
    FlashcardDirection.FILLIN_BOTH: (CardSide.DIRECT, CardSide.REVERSE),
    FlashcardDirection.JUST_INFORMATION: (CardSide.DIRECT,),
    FlashcardDirection.QUIZ_DIRECT: (CardSide.DIRECT,),
    FlashcardDirection.QUIZ_REVERSE: (CardSide.REVERSE,),
    FlashcardDirection.QUIZ_BOTH: (CardSide.DIRECT, CardSide.REVERSE),
}


@dataclass
class ProgressUpdate:
    """New scheduling state written by a review."""
    status: FlashcardStatus
    stability: float
    difficulty: float
    interval: int
    reviewed_at: datetime
    next_review_at: datetime


def required_sides(direction: FlashcardDirection) -> Tuple[CardSide, ...]:
    """Card sides that need independent progress for a direction."""
    return DIRECTION_SIDES[direction]


def _new_progress_row(
    user_id: int,
    flashcard_id: int,
    side: CardSide,
    direction: FlashcardDirection,
    now: datetime
) -> UserFlashcardProgress:
    if direction == FlashcardDirection.JUST_INFORMATION:
        # Information cards are never scheduled
        return UserFlashcardProgress(
            user_id=user_id,
            flashcard_id=flashcard_id,
            card_side=side,
            status=FlashcardStatus.GRADUATED,
            next_review_at=None,
            created_time=now,
        )
    return UserFlashcardProgress(
        user_id=user_id,
        flashcard_id=flashcard_id,
        card_side=side,
        status=FlashcardStatus.NEW,
        next_review_at=now,
        created_time=now,
    )


def fetch_progress(
    session: Session,
    user_id: int,
    flashcard_id: int,
    side: CardSide
) -> Optional[UserFlashcardProgress]:
    """
    Get the live (non-archived) progress row for one card side.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard_id: Flashcard ID
        side: Card side

    Returns:
        The progress row, or None if the side was never initialized
    """
    return session.exec(
        select(UserFlashcardProgress).where(
            UserFlashcardProgress.user_id == user_id,
            UserFlashcardProgress.flashcard_id == flashcard_id,
            UserFlashcardProgress.card_side == side,
            UserFlashcardProgress.archived == False  # noqa: E712
        )
    ).first()


def get_all_progress(
    session: Session,
    user_id: int,
    flashcard_id: int
) -> List[UserFlashcardProgress]:
    """Get every live progress row of a user for one flashcard."""
    return list(session.exec(
        select(UserFlashcardProgress).where(
            UserFlashcardProgress.user_id == user_id,
            UserFlashcardProgress.flashcard_id == flashcard_id,
            UserFlashcardProgress.archived == False  # noqa: E712
        )
    ).all())


def initialize_sides(
    session: Session,
    user_id: int,
    flashcard: Flashcard,
    sides: Optional[Tuple[CardSide, ...]] = None,
    now: Optional[datetime] = None
) -> List[UserFlashcardProgress]:
    """
    Idempotently create a progress row for every side the flashcard requires.

    Existing live rows are left untouched. JustInformation cards get a single
    graduated side with no next review.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard: Flashcard to initialize
        sides: Sides to create (defaults to the sides implied by the direction)
        now: Current time (defaults to utcnow)

    Returns:
        Live progress rows for the requested sides
    """
    if now is None:
        now = utcnow()
    if sides is None:
        sides = required_sides(flashcard.direction)

    rows = []
    for side in sides:
        existing = fetch_progress(session, user_id, flashcard.id, side)
        if existing:
            rows.append(existing)
            continue
        row = _new_progress_row(user_id, flashcard.id, side, flashcard.direction, now)
        session.add(row)
        rows.append(row)
        logger.debug(f"Initialized progress for user {user_id}, flashcard {flashcard.id}, side {side.value}")

    session.flush()
    return rows


def upsert_progress(
    session: Session,
    user_id: int,
    flashcard_id: int,
    side: CardSide,
    update: ProgressUpdate
) -> UserFlashcardProgress:
    """
    Insert the live progress row for a side if absent, else update it in place.

    State fields are always overwritten and review_count is always incremented.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard_id: Flashcard ID
        side: Card side
        update: New scheduling state

    Returns:
        The written progress row
    """
    progress = fetch_progress(session, user_id, flashcard_id, side)
    if progress is None:
        progress = UserFlashcardProgress(
            user_id=user_id,
            flashcard_id=flashcard_id,
            card_side=side,
            created_time=update.reviewed_at,
        )
        session.add(progress)

    progress.status = update.status
    progress.stability = update.stability
    progress.difficulty = update.difficulty
    progress.interval = update.interval
    progress.review_count = (progress.review_count or 0) + 1
    progress.last_reviewed_at = update.reviewed_at
    progress.next_review_at = update.next_review_at

    session.flush()
    return progress


def reset_progress(
    session: Session,
    user_id: int,
    flashcard_id: int,
    now: Optional[datetime] = None
) -> List[UserFlashcardProgress]:
    """
    Reset a flashcard to New for a user.

    Wipes the card's review history and zeroes every live side.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard_id: Flashcard ID
        now: Current time (defaults to utcnow)

    Returns:
        The reset progress rows
    """
    if now is None:
        now = utcnow()

    history = session.exec(
        select(FlashcardReviewHistory).where(
            FlashcardReviewHistory.user_id == user_id,
            FlashcardReviewHistory.flashcard_id == flashcard_id
        )
    ).all()
    for event in history:
        session.delete(event)

    rows = get_all_progress(session, user_id, flashcard_id)
    for row in rows:
        row.status = FlashcardStatus.NEW
        row.stability = 0.0
        row.difficulty = 0.0
        row.interval = 0
        row.review_count = 0
        row.last_reviewed_at = None
        row.next_review_at = now
        session.add(row)

    session.flush()
    logger.info(f"Reset progress for user {user_id}, flashcard {flashcard_id} ({len(rows)} sides)")
    return rows


def snooze_flashcard(
    session: Session,
    user_id: int,
    flashcard_id: int,
    now: Optional[datetime] = None
) -> List[UserFlashcardProgress]:
    """
    Push the next review of every live side forward by the snooze offset.

    Memory state and history are untouched.

    Raises:
        NotFoundError: If the user has no live progress for the card
    """
    if now is None:
        now = utcnow()

    rows = get_all_progress(session, user_id, flashcard_id)
    if not rows:
        raise NotFoundError(f"No progress found for flashcard {flashcard_id}")

    snoozed_until = now + timedelta(hours=settings.snooze_hours)
    for row in rows:
        row.next_review_at = snoozed_until
        session.add(row)

    session.flush()
    logger.info(f"Snoozed flashcard {flashcard_id} for user {user_id} until {snoozed_until}")
    return rows


def _remap_user_progress(
    session: Session,
    user_id: int,
    flashcard: Flashcard,
    new_direction: FlashcardDirection,
    now: datetime
) -> List[UserFlashcardProgress]:
    for row in get_all_progress(session, user_id, flashcard.id):
        row.archived = True
        session.add(row)
    session.flush()

    rows = []
    for side in required_sides(new_direction):
        archived_row = session.exec(
            select(UserFlashcardProgress).where(
                UserFlashcardProgress.user_id == user_id,
                UserFlashcardProgress.flashcard_id == flashcard.id,
                UserFlashcardProgress.card_side == side,
                UserFlashcardProgress.archived == True  # noqa: E712
            ).order_by(UserFlashcardProgress.id.desc())
        ).first()

        if archived_row:
            archived_row.archived = False
            if new_direction == FlashcardDirection.JUST_INFORMATION:
                archived_row.status = FlashcardStatus.GRADUATED
                archived_row.next_review_at = None
            session.add(archived_row)
            session.flush()
            rows.append(archived_row)
        else:
            row = _new_progress_row(user_id, flashcard.id, side, new_direction, now)
            session.add(row)
            session.flush()
            rows.append(row)
    return rows


def change_progress_direction(
    session: Session,
    user_id: int,
    flashcard: Flashcard,
    new_direction: FlashcardDirection,
    now: Optional[datetime] = None
) -> List[UserFlashcardProgress]:
    """
    Re-map progress onto the sides of a new direction.

    Every learner with live progress on the card is re-mapped, together with
    the acting user. For each learner all live rows are archived first; each
    side of the new direction then restores its most recent archived row when
    one exists, or starts fresh.

    Args:
        session: Database session
        user_id: Acting user ID
        flashcard: Flashcard whose direction changed (already carrying new_direction)
        new_direction: The new direction
        now: Current time (defaults to utcnow)

    Returns:
        The acting user's live progress rows after the change
    """
    if now is None:
        now = utcnow()

    learner_ids = set(session.exec(
        select(UserFlashcardProgress.user_id).where(
            UserFlashcardProgress.flashcard_id == flashcard.id,
            UserFlashcardProgress.archived == False  # noqa: E712
        )
    ).all())
    learner_ids.add(user_id)

    acting_rows = []
    for learner_id in sorted(learner_ids):
        rows = _remap_user_progress(session, learner_id, flashcard, new_direction, now)
        if learner_id == user_id:
            acting_rows = rows

    logger.info(
        f"Moved progress of {len(learner_ids)} learners on flashcard {flashcard.id} "
        f"to direction {new_direction.value}"
    )
    return acting_rows
