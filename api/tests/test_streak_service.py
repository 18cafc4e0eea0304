"""
Tests for daily points and streaks.
"""
from datetime import date, timedelta

from flashcard_engine.services.streak_service import (
    calculate_current_streak,
    calculate_longest_streak,
    get_streak,
)

from conftest import OTHER_USER_ID, OWNER_ID, add_history, days_ago, make_card, make_collection


class TestStreakCalculations:
    def test_current_streak_counts_back_from_today(self):
        today = date(2026, 3, 10)
        active = {today, today - timedelta(days=1), today - timedelta(days=2)}
        assert calculate_current_streak(active, today) == 3

    def test_gap_breaks_current_streak(self):
        today = date(2026, 3, 10)
        assert calculate_current_streak({today, today - timedelta(days=2)}, today) == 1

    def test_inactive_today(self):
        today = date(2026, 3, 10)
        assert calculate_current_streak({today - timedelta(days=1)}, today) == 0

    def test_longest_streak(self):
        start = date(2026, 1, 1)
        active = [start + timedelta(days=d) for d in (0, 1, 2, 5, 6, 9, 10, 11, 12)]
        assert calculate_longest_streak(active) == 4
        assert calculate_longest_streak([]) == 0


class TestGetStreak:
    def test_points_and_streaks(self, session, now):
        card = make_card(session, make_collection(session), front="a", back="b")
        add_history(session, card, 4, now)
        add_history(session, card, 1, now - timedelta(hours=2))
        add_history(session, card, 3, days_ago(1))
        add_history(session, card, 2, days_ago(2))
        add_history(session, card, 4, days_ago(10))
        add_history(session, card, 4, days_ago(1), user_id=OTHER_USER_ID)

        response = get_streak(session, OWNER_ID, days=3, now=now)

        assert response.current_streak == 3
        assert response.longest_streak == 3
        assert [p.date for p in response.daily_points] == [now.date() - timedelta(days=d) for d in range(4)]
        assert [p.points for p in response.daily_points] == [6, 3, 2, 0]

    def test_gap_at_yesterday(self, session, now):
        card = make_card(session, make_collection(session), front="a", back="b")
        add_history(session, card, 3, now)
        add_history(session, card, 3, days_ago(2))

        response = get_streak(session, OWNER_ID, days=7, now=now)

        assert response.current_streak == 1
        assert response.daily_points[1].points == 0
        assert response.daily_points[2].points == 3

    def test_no_reviews(self, session, now):
        response = get_streak(session, OWNER_ID, days=5, now=now)

        assert response.current_streak == 0
        assert response.longest_streak == 0
        assert len(response.daily_points) == 6
        assert all(p.points == 0 for p in response.daily_points)
