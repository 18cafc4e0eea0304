"""
Adaptive desired-retention service.

Users with enough review history get a personal desired retention computed
by a retention optimizer from their review log. Results are cached per user
in UserSettings and recomputed lazily once stale.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from sqlmodel import Session, select, func

from fsrs_rs_python import DEFAULT_PARAMETERS, default_simulator_config, optimal_retention

from flashcard_engine.core.config import settings
from flashcard_engine.models.enums import CardSide, FlashcardStatus, ReviewKind
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.user_settings import UserSettings
from flashcard_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevlogEntry:
    flashcard_id: int
    card_side: CardSide
    rating: int
    kind: ReviewKind


# (done, total) -> keep going
ProgressCallback = Callable[[int, int], bool]


def review_kind(rating: int, previous_status: FlashcardStatus) -> ReviewKind:
    """Phase tag of a review given the status the card had before it."""
    if rating == 1 and previous_status in (FlashcardStatus.REVIEW, FlashcardStatus.GRADUATED):
        return ReviewKind.RELEARNING
    if previous_status in (FlashcardStatus.NEW, FlashcardStatus.LEARNING):
        return ReviewKind.LEARNING
    return ReviewKind.REVIEW


def count_reviews(session: Session, user_id: int) -> int:
    """Total number of review events of a user."""
    return session.exec(
        select(func.count(FlashcardReviewHistory.id)).where(
            FlashcardReviewHistory.user_id == user_id
        )
    ).one()


def build_revlog(session: Session, user_id: int) -> List[RevlogEntry]:
    """
    Build the optimizer input from a user's review history, oldest first.

    Args:
        session: Database session
        user_id: Learner ID

    Returns:
        One revlog entry per review event
    """
    events = session.exec(
        select(FlashcardReviewHistory)
        .where(FlashcardReviewHistory.user_id == user_id)
        .order_by(FlashcardReviewHistory.review_time, FlashcardReviewHistory.id)
    ).all()

    return [
        RevlogEntry(
            flashcard_id=event.flashcard_id,
            card_side=event.card_side,
            rating=event.rating,
            kind=review_kind(event.rating, event.previous_status),
        )
        for event in events
    ]


def _ignore_progress(done: int, total: int) -> bool:
    return True


def _normalize(counts: List[int]) -> Optional[List[float]]:
    total = sum(counts)
    if total == 0:
        return None
    return [count / total for count in counts]


def rating_probabilities(
    revlog: List[RevlogEntry],
    progress: ProgressCallback = _ignore_progress
) -> Tuple[Optional[List[float]], Optional[List[float]]]:
    """
    Answer distributions used to configure the review simulator.

    Returns:
        (first_rating_prob over Again/Hard/Good/Easy for the first answer of
        each card side, review_rating_prob over Hard/Good/Easy for successful
        answers in the Review phase); None where the log has no such answers
    """
    first_counts = [0, 0, 0, 0]
    review_counts = [0, 0, 0]
    seen = set()
    for index, entry in enumerate(revlog):
        key = (entry.flashcard_id, entry.card_side)
        if key not in seen:
            seen.add(key)
            first_counts[entry.rating - 1] += 1
        elif entry.kind == ReviewKind.REVIEW and entry.rating > 1:
            review_counts[entry.rating - 2] += 1
        progress(index + 1, len(revlog))
    return _normalize(first_counts), _normalize(review_counts)


class RetentionOptimizer:
    """Computes an optimal desired retention from a review log."""

    def optimal_retention(
        self,
        revlog: List[RevlogEntry],
        progress: ProgressCallback = _ignore_progress
    ) -> float:
        raise NotImplementedError


class FSRSRetentionOptimizer(RetentionOptimizer):
    """
    Optimal retention from the FSRS review simulator.

    The simulator's default configuration is fitted to the learner's answer
    distribution (first-answer and review-answer rating probabilities) before
    searching for the retention with the best knowledge per review cost.
    """

    def __init__(
        self,
        parameters: Optional[List[float]] = None,
        min_retention: Optional[float] = None,
        max_retention: Optional[float] = None
    ):
        if parameters is None:
            parameters = settings.fsrs_parameters
        self.parameters = list(parameters) if parameters else list(DEFAULT_PARAMETERS)
        self.min_retention = settings.retention_min if min_retention is None else min_retention
        self.max_retention = settings.retention_max if max_retention is None else max_retention

    def simulator_config(self, revlog: List[RevlogEntry], progress: ProgressCallback = _ignore_progress):
        """Default simulator configuration with the learner's rating probabilities."""
        config = default_simulator_config()
        first_rating_prob, review_rating_prob = rating_probabilities(revlog, progress)
        if first_rating_prob is not None:
            config.first_rating_prob = first_rating_prob
        if review_rating_prob is not None:
            config.review_rating_prob = review_rating_prob
        return config

    def optimal_retention(
        self,
        revlog: List[RevlogEntry],
        progress: ProgressCallback = _ignore_progress
    ) -> float:
        if not revlog:
            raise ValueError("Cannot optimize retention on an empty review log")

        config = self.simulator_config(revlog, progress)
        retention = float(optimal_retention(config, self.parameters))
        logger.debug(f"Simulator retention {retention:.3f} from {len(revlog)} reviews")
        return min(self.max_retention, max(self.min_retention, retention))


class RetentionCache:
    """
    Read-through cache of per-user desired retention.

    Values live in UserSettings and are trusted for `ttl`; an absent or stale
    value triggers a recompute. Optimizer failures fall back to the default
    and are not cached.
    """

    def __init__(
        self,
        optimizer: Optional[RetentionOptimizer] = None,
        ttl: Optional[timedelta] = None,
        min_reviews: Optional[int] = None,
        default_retention: Optional[float] = None
    ):
        self.optimizer = optimizer or FSRSRetentionOptimizer()
        self.ttl = ttl if ttl is not None else timedelta(days=settings.retention_cache_days)
        self.min_reviews = settings.min_reviews_for_optimal_retention if min_reviews is None else min_reviews
        self.default_retention = (
            settings.default_desired_retention if default_retention is None else default_retention
        )

    def get_desired_retention(
        self,
        session: Session,
        user_id: int,
        now: Optional[datetime] = None
    ) -> float:
        """
        Desired retention for a user's next review.

        Args:
            session: Database session
            user_id: Learner ID
            now: Current time (defaults to utcnow)

        Returns:
            Retention in (0, 1)
        """
        if now is None:
            now = utcnow()

        if count_reviews(session, user_id) < self.min_reviews:
            return self.default_retention

        user_settings = session.get(UserSettings, user_id)
        if (
            user_settings
            and user_settings.optimal_retention is not None
            and user_settings.last_calculated is not None
            and now - user_settings.last_calculated < self.ttl
        ):
            logger.debug(f"Using cached retention {user_settings.optimal_retention:.3f} for user {user_id}")
            return user_settings.optimal_retention

        try:
            retention = float(self.optimizer.optimal_retention(build_revlog(session, user_id), _ignore_progress))
            if not 0.0 < retention < 1.0:
                raise ValueError(f"Retention {retention} outside (0, 1)")
        except Exception as e:
            logger.warning(f"Retention optimizer failed for user {user_id}, using default: {e}")
            return self.default_retention

        if user_settings is None:
            user_settings = UserSettings(user_id=user_id)
        user_settings.optimal_retention = retention
        user_settings.last_calculated = now
        session.add(user_settings)
        session.flush()

        logger.info(f"Computed optimal retention {retention:.3f} for user {user_id}")
        return retention
