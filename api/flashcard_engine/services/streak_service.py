"""
Streak and daily-points statistics.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional
from sqlmodel import Session, select

from flashcard_engine.core.config import settings
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.schemas.streak import DailyPoints, StreakResponse
from flashcard_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

RATING_POINTS = {1: 1, 2: 2, 3: 3, 4: 5}


def calculate_daily_points(
    reviews: Iterable[tuple],
    today: date,
    days: int
) -> List[DailyPoints]:
    """
    Points per calendar day from today back to today - days, newest first.

    Args:
        reviews: (review_time, rating) pairs
        today: Last day of the window
        days: Window length in days before today

    Returns:
        days + 1 entries; days without reviews score 0
    """
    start = today - timedelta(days=days)
    points: Dict[date, int] = {}
    for review_time, rating in reviews:
        day = review_time.date()
        if start <= day <= today:
            points[day] = points.get(day, 0) + RATING_POINTS.get(rating, 0)

    return [
        DailyPoints(date=today - timedelta(days=offset), points=points.get(today - timedelta(days=offset), 0))
        for offset in range(days + 1)
    ]


def calculate_current_streak(active_dates: Iterable[date], today: date) -> int:
    """Consecutive active days walking back from today; 0 if today is inactive."""
    active = set(active_dates)
    streak = 0
    day = today
    while day in active:
        streak += 1
        day -= timedelta(days=1)
    return streak


def calculate_longest_streak(active_dates: Iterable[date]) -> int:
    """Size of the largest run of consecutive calendar days."""
    longest = 0
    run = 0
    previous = None
    for day in sorted(set(active_dates)):
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


def get_streak(
    session: Session,
    user_id: int,
    days: Optional[int] = None,
    now: Optional[datetime] = None
) -> StreakResponse:
    """
    Daily points and streaks of a user.

    Args:
        session: Database session
        user_id: Learner ID
        days: Window length for daily points (defaults to settings.streak_window_days)
        now: Current time (defaults to utcnow)

    Returns:
        StreakResponse
    """
    if days is None:
        days = settings.streak_window_days
    if now is None:
        now = utcnow()
    today = now.date()

    reviews = session.exec(
        select(FlashcardReviewHistory.review_time, FlashcardReviewHistory.rating)
        .where(FlashcardReviewHistory.user_id == user_id)
    ).all()

    active_dates = {review_time.date() for review_time, _ in reviews}
    response = StreakResponse(
        user_id=user_id,
        current_streak=calculate_current_streak(active_dates, today),
        longest_streak=calculate_longest_streak(active_dates),
        daily_points=calculate_daily_points(reviews, today, days),
    )
    logger.debug(
        f"Streak for user {user_id}: current={response.current_streak}, longest={response.longest_streak}"
    )
    return response
