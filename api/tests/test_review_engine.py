"""
Tests for the review engine: status transitions, scheduling and access checks.
"""
from datetime import timedelta

import pytest
from sqlmodel import select

from flashcard_engine.core.exceptions import AccessDeniedError, InvalidArgumentError, InvalidStateError, NotFoundError
from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.models.flashcard_level import FlashcardLevel
from flashcard_engine.models.flashcard_level_item import FlashcardLevelItem
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.level_prerequisite import LevelPrerequisite
from flashcard_engine.services.memory_model import bootstrap_memory_state
from flashcard_engine.services.progress_service import fetch_progress
from flashcard_engine.services.review_service import next_status

from conftest import OTHER_USER_ID, OWNER_ID, make_card, make_collection

S = FlashcardStatus


class TestNextStatus:
    @pytest.mark.parametrize("current,rating,expected", [
        (S.NEW, 1, S.LEARNING),
        (S.NEW, 2, S.NEW),
        (S.NEW, 3, S.LEARNING),
        (S.NEW, 4, S.LEARNING),
        (S.LEARNING, 1, S.LEARNING),
        (S.LEARNING, 2, S.LEARNING),
        (S.LEARNING, 3, S.REVIEW),
        (S.LEARNING, 4, S.REVIEW),
        (S.REVIEW, 1, S.LEARNING),
        (S.REVIEW, 2, S.REVIEW),
        (S.REVIEW, 3, S.GRADUATED),
        (S.REVIEW, 4, S.GRADUATED),
        (S.GRADUATED, 1, S.LEARNING),
        (S.GRADUATED, 2, S.GRADUATED),
        (S.GRADUATED, 3, S.GRADUATED),
        (S.GRADUATED, 4, S.GRADUATED),
    ])
    def test_transition_table(self, current, rating, expected):
        assert next_status(current, rating) == expected

    def test_every_pair_maps_to_a_status(self):
        for current in FlashcardStatus:
            for rating in (1, 2, 3, 4):
                assert next_status(current, rating) in FlashcardStatus


class TestReview:
    def test_first_review_uses_bootstrap_memory(self, session, review_engine, memory_model, now):
        card = make_card(session, make_collection(session), front="klama", back="to go", direction=FlashcardDirection.DIRECT)

        result = review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT, now=now)

        expected_memory = bootstrap_memory_state(3)
        progress = result.progress
        assert progress.status == S.LEARNING
        assert progress.stability == pytest.approx(expected_memory.stability)
        assert progress.difficulty == pytest.approx(expected_memory.difficulty)
        assert progress.interval == 4
        assert progress.review_count == 1
        assert progress.last_reviewed_at == now
        assert progress.next_review_at == now + timedelta(days=4)
        # Never-reviewed cards have no memory state and no elapsed time
        assert memory_model.calls == [(None, 0.9, 0)]

    def test_later_review_uses_model_memory_and_elapsed_days(self, session, review_engine, memory_model, now):
        card = make_card(session, make_collection(session), front="klama", back="to go", direction=FlashcardDirection.DIRECT)
        review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT, now=now)
        first_stability = fetch_progress(session, OWNER_ID, card.id, CardSide.DIRECT).stability

        later = now + timedelta(days=5, hours=3)
        result = review_engine.review(session, OWNER_ID, card.id, 4, CardSide.DIRECT, now=later)

        current, retention, elapsed = memory_model.calls[-1]
        assert current.stability == pytest.approx(first_stability)
        assert elapsed == 5
        assert result.progress.stability == pytest.approx(first_stability * 4)
        assert result.progress.status == S.REVIEW
        assert result.progress.review_count == 2

    def test_rating_one_demotes_graduated_card(self, session, review_engine, now):
        card = make_card(session, make_collection(session), front="a", back="b", direction=FlashcardDirection.DIRECT)
        progress = fetch_progress(session, OWNER_ID, card.id, CardSide.DIRECT)
        progress.status = S.GRADUATED
        session.add(progress)
        session.flush()

        result = review_engine.review(session, OWNER_ID, card.id, 1, CardSide.DIRECT, now=now)

        assert result.progress.status == S.LEARNING

    def test_review_appends_history_with_previous_status(self, session, review_engine, now):
        card = make_card(session, make_collection(session), front="a", back="b")
        review_engine.review(session, OWNER_ID, card.id, 3, CardSide.REVERSE, now=now)
        review_engine.review(session, OWNER_ID, card.id, 2, CardSide.REVERSE, now=now + timedelta(days=1))

        events = session.exec(
            select(FlashcardReviewHistory).order_by(FlashcardReviewHistory.id)
        ).all()
        assert [e.rating for e in events] == [3, 2]
        assert [e.previous_status for e in events] == [S.NEW, S.LEARNING]
        assert [e.card_side for e in events] == [CardSide.REVERSE, CardSide.REVERSE]
        assert events[1].elapsed_days == 1

    def test_missing_progress_is_created_on_review(self, session, review_engine, now):
        card = make_card(session, make_collection(session, is_public=True), front="a", back="b", user_id=None)

        result = review_engine.review(session, OTHER_USER_ID, card.id, 4, CardSide.DIRECT, now=now)

        assert result.progress.user_id == OTHER_USER_ID
        assert result.progress.review_count == 1

    @pytest.mark.parametrize("rating", [0, 5, -1, True])
    def test_invalid_rating(self, session, review_engine, rating):
        card = make_card(session, make_collection(session), front="a", back="b")
        with pytest.raises(InvalidArgumentError):
            review_engine.review(session, OWNER_ID, card.id, rating, CardSide.DIRECT)

    def test_side_not_used_by_direction(self, session, review_engine):
        card = make_card(session, make_collection(session), front="a", back="b", direction=FlashcardDirection.DIRECT)
        with pytest.raises(InvalidArgumentError):
            review_engine.review(session, OWNER_ID, card.id, 3, CardSide.REVERSE)

    def test_unknown_side(self, session, review_engine):
        card = make_card(session, make_collection(session), front="a", back="b")
        with pytest.raises(InvalidArgumentError):
            review_engine.review(session, OWNER_ID, card.id, 3, "sideways")

    def test_missing_flashcard(self, session, review_engine):
        with pytest.raises(NotFoundError):
            review_engine.review(session, OWNER_ID, 999, 3, CardSide.DIRECT)

    def test_information_card_cannot_be_reviewed(self, session, review_engine):
        card = make_card(session, make_collection(session), front="a", back="b",
                         direction=FlashcardDirection.JUST_INFORMATION)
        with pytest.raises(InvalidStateError):
            review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT)


class TestAccessGate:
    def test_private_collection_of_other_user(self, session, review_engine):
        card = make_card(session, make_collection(session), front="a", back="b")
        with pytest.raises(AccessDeniedError):
            review_engine.review(session, OTHER_USER_ID, card.id, 3, CardSide.DIRECT)
        assert session.exec(select(FlashcardReviewHistory)).all() == []

    def test_public_collection_is_open(self, session, review_engine, now):
        card = make_card(session, make_collection(session, is_public=True), front="a", back="b")
        result = review_engine.review(session, OTHER_USER_ID, card.id, 3, CardSide.DIRECT, now=now)
        assert result.progress.status == S.LEARNING

    def test_locked_level_denies_review(self, session, review_engine):
        collection = make_collection(session)
        card = make_card(session, collection, front="a", back="b")
        first = FlashcardLevel(collection_id=collection.id, name="L1", position=0)
        second = FlashcardLevel(collection_id=collection.id, name="L2", position=1)
        session.add(first)
        session.add(second)
        session.flush()
        session.add(LevelPrerequisite(level_id=second.id, prerequisite_id=first.id))
        session.add(FlashcardLevelItem(level_id=second.id, flashcard_id=card.id, position=0))
        session.flush()

        with pytest.raises(AccessDeniedError, match="locked"):
            review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT)
