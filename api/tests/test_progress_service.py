"""
Tests for the progress store.
"""
from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from flashcard_engine.core.exceptions import NotFoundError
from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.services.progress_service import (
    change_progress_direction,
    fetch_progress,
    get_all_progress,
    initialize_sides,
    required_sides,
    reset_progress,
    snooze_flashcard,
)

from conftest import OWNER_ID, make_card, make_collection


class TestRequiredSides:
    @pytest.mark.parametrize("direction,sides", [
        (FlashcardDirection.DIRECT, (CardSide.DIRECT,)),
        (FlashcardDirection.REVERSE, (CardSide.REVERSE,)),
        (FlashcardDirection.BOTH, (CardSide.DIRECT, CardSide.REVERSE)),
        (FlashcardDirection.FILLIN, (CardSide.DIRECT,)),
        (FlashcardDirection.FILLIN_REVERSE, (CardSide.REVERSE,)),
        (FlashcardDirection.FILLIN_BOTH, (CardSide.DIRECT, CardSide.REVERSE)),
        (FlashcardDirection.JUST_INFORMATION, (CardSide.DIRECT,)),
        (FlashcardDirection.QUIZ_DIRECT, (CardSide.DIRECT,)),
        (FlashcardDirection.QUIZ_REVERSE, (CardSide.REVERSE,)),
        (FlashcardDirection.QUIZ_BOTH, (CardSide.DIRECT, CardSide.REVERSE)),
    ])
    def test_direction_sides(self, direction, sides):
        assert required_sides(direction) == sides


class TestInitializeSides:
    def test_creates_new_rows_per_side(self, session, now):
        card = make_card(session, make_collection(session), front="a", back="b", user_id=None)

        rows = initialize_sides(session, OWNER_ID, card, now=now)

        assert sorted(row.card_side for row in rows) == [CardSide.DIRECT, CardSide.REVERSE]
        assert all(row.status == FlashcardStatus.NEW for row in rows)
        assert all(row.next_review_at == now for row in rows)

    def test_is_idempotent(self, session, now):
        card = make_card(session, make_collection(session), front="a", back="b", user_id=None)

        first = initialize_sides(session, OWNER_ID, card, now=now)
        second = initialize_sides(session, OWNER_ID, card, now=now + timedelta(days=1))

        assert [row.id for row in first] == [row.id for row in second]
        assert len(session.exec(select(UserFlashcardProgress)).all()) == 2

    def test_information_card_is_graduated_without_review(self, session, now):
        card = make_card(session, make_collection(session), front="a", back="b",
                         direction=FlashcardDirection.JUST_INFORMATION, user_id=None)

        rows = initialize_sides(session, OWNER_ID, card, now=now)

        assert len(rows) == 1
        assert rows[0].status == FlashcardStatus.GRADUATED
        assert rows[0].next_review_at is None

    def test_second_live_row_violates_unique_index(self, session):
        card = make_card(session, make_collection(session), front="a", back="b",
                         direction=FlashcardDirection.DIRECT)
        session.add(UserFlashcardProgress(user_id=OWNER_ID, flashcard_id=card.id, card_side=CardSide.DIRECT))
        with pytest.raises(IntegrityError):
            session.flush()


class TestResetAndSnooze:
    def test_reset_to_new(self, session, review_engine, now):
        card = make_card(session, make_collection(session), front="a", back="b")
        review_engine.review(session, OWNER_ID, card.id, 4, CardSide.DIRECT, now=now)
        review_engine.review(session, OWNER_ID, card.id, 3, CardSide.REVERSE, now=now)

        later = now + timedelta(days=2)
        reset_progress(session, OWNER_ID, card.id, now=later)

        for side in (CardSide.DIRECT, CardSide.REVERSE):
            progress = fetch_progress(session, OWNER_ID, card.id, side)
            assert progress.status == FlashcardStatus.NEW
            assert progress.interval == 0
            assert progress.review_count == 0
            assert progress.stability == 0.0
            assert progress.difficulty == 0.0
            assert progress.next_review_at == later
        assert session.exec(select(FlashcardReviewHistory)).all() == []

    def test_snooze_pushes_six_hours(self, session, review_engine, now):
        card = make_card(session, make_collection(session), front="a", back="b",
                         direction=FlashcardDirection.DIRECT)
        review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT, now=now)
        before = fetch_progress(session, OWNER_ID, card.id, CardSide.DIRECT)
        stability, review_count = before.stability, before.review_count

        snooze_flashcard(session, OWNER_ID, card.id, now=now)

        after = fetch_progress(session, OWNER_ID, card.id, CardSide.DIRECT)
        assert after.next_review_at == now + timedelta(hours=6)
        assert after.stability == stability
        assert after.review_count == review_count
        assert len(session.exec(select(FlashcardReviewHistory)).all()) == 1

    def test_snooze_without_progress(self, session):
        card = make_card(session, make_collection(session), front="a", back="b", user_id=None)
        with pytest.raises(NotFoundError):
            snooze_flashcard(session, OWNER_ID, card.id)


class TestChangeDirection:
    def test_dropped_side_is_archived_and_restored(self, session, review_engine, now):
        card = make_card(session, make_collection(session), front="a", back="b")
        review_engine.review(session, OWNER_ID, card.id, 4, CardSide.REVERSE, now=now)
        reverse_id = fetch_progress(session, OWNER_ID, card.id, CardSide.REVERSE).id

        card.direction = FlashcardDirection.DIRECT
        rows = change_progress_direction(session, OWNER_ID, card, FlashcardDirection.DIRECT, now=now)

        assert [row.card_side for row in rows] == [CardSide.DIRECT]
        assert fetch_progress(session, OWNER_ID, card.id, CardSide.REVERSE) is None
        assert session.get(UserFlashcardProgress, reverse_id).archived is True

        card.direction = FlashcardDirection.BOTH
        change_progress_direction(session, OWNER_ID, card, FlashcardDirection.BOTH, now=now)

        restored = fetch_progress(session, OWNER_ID, card.id, CardSide.REVERSE)
        assert restored.id == reverse_id
        assert restored.review_count == 1
        assert len(get_all_progress(session, OWNER_ID, card.id)) == 2

    def test_information_direction_graduates(self, session, now):
        card = make_card(session, make_collection(session), front="a", back="b",
                         direction=FlashcardDirection.DIRECT)

        card.direction = FlashcardDirection.JUST_INFORMATION
        rows = change_progress_direction(session, OWNER_ID, card, FlashcardDirection.JUST_INFORMATION, now=now)

        assert rows[0].status == FlashcardStatus.GRADUATED
        assert rows[0].next_review_at is None
