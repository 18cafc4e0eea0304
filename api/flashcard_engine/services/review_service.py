"""
Review engine.

Single writer of progress state: validates a rating, checks access, asks the
memory model for the next state, applies the status transition, and writes
the review event together with the progress row. Successful reviews of
dictionary-linked cards are propagated one hop to related cards.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Union
from sqlmodel import Session

from flashcard_engine.core.config import settings
from flashcard_engine.core.exceptions import InvalidArgumentError, InvalidStateError
from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.services import access_service, auto_progress_service, level_service
from flashcard_engine.services.content_service import resolve_card_content
from flashcard_engine.services.memory_model import (
    FSRSMemoryModel,
    MemoryModel,
    MemoryState,
    bootstrap_memory_state,
)
from flashcard_engine.services.progress_service import (
    ProgressUpdate,
    fetch_progress,
    initialize_sides,
    required_sides,
    upsert_progress,
)
from flashcard_engine.services.retention_service import RetentionCache
from flashcard_engine.utils.time_utils import utcnow, whole_days_between

logger = logging.getLogger(__name__)

VALID_RATINGS = (1, 2, 3, 4)
AUTO_PROGRESS_RATING = 4


def next_status(current: FlashcardStatus, rating: int) -> FlashcardStatus:
    """
    Status transition for one review.

    Again always returns the card to Learning; Good/Easy promote one step;
    Hard keeps the status.
    """
    if rating == 1:
        return FlashcardStatus.LEARNING
    if rating >= 3:
        if current == FlashcardStatus.NEW:
            return FlashcardStatus.LEARNING
        if current == FlashcardStatus.LEARNING:
            return FlashcardStatus.REVIEW
        if current == FlashcardStatus.REVIEW:
            return FlashcardStatus.GRADUATED
    return current


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or rating not in VALID_RATINGS:
        raise InvalidArgumentError(f"Rating must be one of 1, 2, 3, 4, got {rating!r}")
    return rating


def parse_side(side: Union[CardSide, str]) -> CardSide:
    try:
        return CardSide(side)
    except ValueError:
        raise InvalidArgumentError(f"Invalid card side: {side!r}")


def validate_side_for_direction(side: Union[CardSide, str], direction: FlashcardDirection) -> CardSide:
    """
    Ensure a side is tracked by the card's direction.

    Raises:
        InvalidArgumentError: If the side is unknown or not used by the direction
    """
    card_side = parse_side(side)
    if card_side not in required_sides(direction):
        raise InvalidArgumentError(
            f"Card side '{card_side.value}' is not valid for direction '{direction.value}'"
        )
    return card_side


@dataclass
class ReviewResult:
    progress: UserFlashcardProgress
    auto_progressed: List[UserFlashcardProgress] = field(default_factory=list)


class ReviewEngine:
    """
    Orchestrates graded reviews.

    The memory model and retention cache are injected so tests can replace
    them. Writes are flushed, never committed: the caller owns the transaction.
    """

    def __init__(
        self,
        memory_model: Optional[MemoryModel] = None,
        retention_cache: Optional[RetentionCache] = None
    ):
        self.memory_model = memory_model or FSRSMemoryModel(settings.fsrs_parameters or None)
        self.retention_cache = retention_cache or RetentionCache()

    def review(
        self,
        session: Session,
        user_id: int,
        flashcard_id: int,
        rating: int,
        side: Union[CardSide, str],
        now: Optional[datetime] = None
    ) -> ReviewResult:
        """
        Apply a graded review to one side of a flashcard.

        Args:
            session: Database session
            user_id: Learner ID
            flashcard_id: Flashcard ID
            rating: 1 = again, 2 = hard, 3 = good, 4 = easy
            side: Reviewed card side
            now: Review time (defaults to utcnow)

        Returns:
            ReviewResult with the updated progress and any auto-progressed rows

        Raises:
            InvalidArgumentError: Bad rating or side
            NotFoundError: Missing flashcard
            AccessDeniedError: Collection not visible or level locked
            InvalidStateError: The card is an information card
        """
        validate_rating(rating)
        if now is None:
            now = utcnow()

        flashcard = access_service.get_flashcard(session, flashcard_id)
        card_side = validate_side_for_direction(side, flashcard.direction)
        if flashcard.direction == FlashcardDirection.JUST_INFORMATION:
            raise InvalidStateError("Information cards cannot be reviewed")
        access_service.verify_study_access(session, flashcard, user_id)

        progress = self.record_review(session, user_id, flashcard, card_side, rating, now)

        result = ReviewResult(progress=progress)
        if rating >= 3:
            content = resolve_card_content(session, flashcard)
            if not content.is_free_content and content.word:
                result.auto_progressed = self._auto_progress(
                    session, user_id, flashcard, content.word, card_side, now
                )

        # Runs after auto-progression: cards_completed includes cards promoted above
        level_service.record_level_answer(session, user_id, flashcard.id, rating, now)
        return result

    def record_review(
        self,
        session: Session,
        user_id: int,
        flashcard: Flashcard,
        side: CardSide,
        rating: int,
        now: datetime
    ) -> UserFlashcardProgress:
        """
        Schedule a side and persist the review event and progress row.

        No access checks and no auto-progression happen here.
        """
        progress = fetch_progress(session, user_id, flashcard.id, side)
        if progress is None:
            progress = initialize_sides(session, user_id, flashcard, (side,), now=now)[0]

        previous_status = progress.status
        current_memory = None
        if progress.review_count and progress.review_count > 0:
            current_memory = MemoryState(stability=progress.stability, difficulty=progress.difficulty)

        elapsed_days = 0
        if progress.last_reviewed_at is not None:
            elapsed_days = whole_days_between(progress.last_reviewed_at, now)

        desired_retention = self.retention_cache.get_desired_retention(session, user_id, now)
        logger.debug(
            f"Scheduling flashcard {flashcard.id} ({side.value}) for user {user_id}: "
            f"elapsed={elapsed_days}d, retention={desired_retention:.3f}"
        )

        candidate = self.memory_model.next_states(current_memory, desired_retention, elapsed_days).for_rating(rating)
        memory = candidate.memory if current_memory is not None else bootstrap_memory_state(rating)
        new_status = next_status(previous_status, rating)
        next_review_at = now + timedelta(days=candidate.interval)

        session.add(FlashcardReviewHistory(
            user_id=user_id,
            flashcard_id=flashcard.id,
            card_side=side,
            rating=rating,
            elapsed_days=elapsed_days,
            scheduled_days=candidate.interval,
            stability=memory.stability,
            difficulty=memory.difficulty,
            previous_status=previous_status,
            review_time=now,
        ))

        progress = upsert_progress(
            session,
            user_id,
            flashcard.id,
            side,
            ProgressUpdate(
                status=new_status,
                stability=memory.stability,
                difficulty=memory.difficulty,
                interval=candidate.interval,
                reviewed_at=now,
                next_review_at=next_review_at,
            )
        )

        logger.info(
            f"Reviewed flashcard {flashcard.id} ({side.value}) for user {user_id}: rating={rating}, "
            f"{previous_status.value} -> {new_status.value}, next in {candidate.interval}d"
        )
        return progress

    def _auto_progress(
        self,
        session: Session,
        user_id: int,
        flashcard: Flashcard,
        word: str,
        side: CardSide,
        now: datetime
    ) -> List[UserFlashcardProgress]:
        # One hop only: record_review never triggers auto-progression itself
        updated = []
        for related, _ in auto_progress_service.find_related_cards(session, user_id, flashcard, word, side):
            updated.append(self.record_review(session, user_id, related, side, AUTO_PROGRESS_RATING, now))

        if updated:
            logger.info(
                f"Auto-progressed {len(updated)} flashcards from flashcard {flashcard.id} for user {user_id}"
            )
        return updated
