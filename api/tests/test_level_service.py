"""
Tests for levels, prerequisites and level progress bookkeeping.
"""
import pytest

from flashcard_engine.core.exceptions import AccessDeniedError, ConflictError, InvalidArgumentError, NotFoundError
from flashcard_engine.models.enums import CardSide, FlashcardDirection
from flashcard_engine.models.user_level_progress import UserLevelProgress
from flashcard_engine.schemas.level import CreateLevelRequest, UpdateLevelRequest
from flashcard_engine.services import level_service
from flashcard_engine.services.access_service import is_level_unlocked

from conftest import OTHER_USER_ID, OWNER_ID, make_card, make_collection


def create(session, collection, name, **kwargs):
    return level_service.create_level(session, collection.id, OWNER_ID, CreateLevelRequest(name=name, **kwargs))


class TestUnlock:
    def test_prerequisite_completion_unlocks(self, session, now):
        collection = make_collection(session)
        first = create(session, collection, "L1")
        second = create(session, collection, "L2", prerequisite_ids=[first.level_id])

        assert is_level_unlocked(session, OWNER_ID, first.level_id) is True
        assert is_level_unlocked(session, OWNER_ID, second.level_id) is False

        session.add(UserLevelProgress(user_id=OWNER_ID, level_id=first.level_id, completed_at=now))
        session.flush()

        assert is_level_unlocked(session, OWNER_ID, second.level_id) is True
        assert is_level_unlocked(session, OTHER_USER_ID, second.level_id) is False

    def test_reviews_complete_a_level(self, session, review_engine, now):
        collection = make_collection(session)
        card = make_card(session, collection, front="a", back="b", direction=FlashcardDirection.DIRECT)
        first = create(session, collection, "L1", min_cards=1, min_success_rate=0.8)
        second = create(session, collection, "L2", prerequisite_ids=[first.level_id])
        level_service.add_cards_to_level(session, first.level_id, OWNER_ID, [card.id])

        review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT, now=now)
        details = level_service.get_level_details(session, first.level_id, OWNER_ID)
        assert details.is_started is True
        assert details.progress.cards_completed == 0
        assert details.progress.completed_at is None

        review_engine.review(session, OWNER_ID, card.id, 3, CardSide.DIRECT, now=now)
        details = level_service.get_level_details(session, first.level_id, OWNER_ID)
        assert details.progress.cards_completed == 1
        assert details.progress.total_answers == 2
        assert details.progress.success_rate == 1.0
        assert details.progress.completed_at == now

        assert level_service.get_level_details(session, second.level_id, OWNER_ID).is_locked is False

    def test_auto_progressed_cards_count_toward_completion(self, session, review_engine, now):
        collection = make_collection(session)
        source = make_card(session, collection, word="run", direction=FlashcardDirection.DIRECT)
        related = make_card(session, collection, word="run out", direction=FlashcardDirection.DIRECT)
        level = create(session, collection, "L1", min_cards=1, min_success_rate=0.8)
        level_service.add_cards_to_level(session, level.level_id, OWNER_ID, [source.id, related.id])
        review_engine.review(session, OWNER_ID, related.id, 3, CardSide.DIRECT, now=now)

        # Source moves to Learning; the related card is promoted to Review by the same review
        review_engine.review(session, OWNER_ID, source.id, 3, CardSide.DIRECT, now=now)

        progress = level_service.get_level_details(session, level.level_id, OWNER_ID).progress
        assert progress.cards_completed == 1
        assert progress.total_answers == 2
        assert progress.completed_at == now

    def test_low_success_rate_blocks_completion(self, session, review_engine, now):
        collection = make_collection(session)
        card = make_card(session, collection, front="a", back="b", direction=FlashcardDirection.DIRECT)
        level = create(session, collection, "L1", min_cards=1, min_success_rate=0.8)
        level_service.add_cards_to_level(session, level.level_id, OWNER_ID, [card.id])

        for rating in (1, 3, 3):
            review_engine.review(session, OWNER_ID, card.id, rating, CardSide.DIRECT, now=now)

        progress = level_service.get_level_details(session, level.level_id, OWNER_ID).progress
        assert progress.cards_completed == 1
        assert progress.correct_answers == 2
        assert progress.completed_at is None


class TestLevelManagement:
    def test_defaults_and_positions(self, session):
        collection = make_collection(session)
        first = create(session, collection, "L1")
        second = create(session, collection, "L2")

        assert (first.min_cards, first.min_success_rate) == (5, 0.8)
        assert (first.position, second.position) == (0, 1)
        assert first.card_count == 0
        assert first.is_locked is False
        assert first.is_started is False
        assert first.progress is None

    def test_only_owner_creates(self, session):
        collection = make_collection(session)
        with pytest.raises(AccessDeniedError):
            level_service.create_level(session, collection.id, OTHER_USER_ID, CreateLevelRequest(name="L"))

    def test_prerequisite_from_other_collection(self, session):
        other = create(session, make_collection(session, name="Other"), "X")
        with pytest.raises(InvalidArgumentError):
            create(session, make_collection(session), "L", prerequisite_ids=[other.level_id])

    def test_update_replaces_prerequisites(self, session):
        collection = make_collection(session)
        first = create(session, collection, "L1")
        second = create(session, collection, "L2")
        third = create(session, collection, "L3", prerequisite_ids=[first.level_id])

        updated = level_service.update_level(
            session, third.level_id, OWNER_ID, UpdateLevelRequest(name="Final", prerequisite_ids=[second.level_id])
        )

        assert updated.name == "Final"
        assert [p.level_id for p in updated.prerequisites] == [second.level_id]
        assert updated.min_cards == 5

    def test_delete_prerequisite_conflicts(self, session):
        collection = make_collection(session)
        first = create(session, collection, "L1")
        second = create(session, collection, "L2", prerequisite_ids=[first.level_id])

        with pytest.raises(ConflictError):
            level_service.delete_level(session, first.level_id, OWNER_ID)

        level_service.delete_level(session, second.level_id, OWNER_ID)
        level_service.delete_level(session, first.level_id, OWNER_ID)
        assert level_service.get_collection_levels(session, collection.id, OWNER_ID) == []

    def test_add_and_remove_cards_renumbers(self, session):
        collection = make_collection(session)
        cards = [make_card(session, collection, front=f"w{i}", back=f"m{i}") for i in range(3)]
        level = create(session, collection, "L1")

        details = level_service.add_cards_to_level(session, level.level_id, OWNER_ID, [c.id for c in cards])
        assert details.card_count == 3

        level_service.remove_card_from_level(session, level.level_id, cards[0].id, OWNER_ID)
        listing = level_service.get_level_cards(session, level.level_id, OWNER_ID)

        assert [(c.flashcard_id, c.position) for c in listing.cards] == [(cards[1].id, 0), (cards[2].id, 1)]
        assert listing.total == 2

        with pytest.raises(NotFoundError):
            level_service.remove_card_from_level(session, level.level_id, cards[0].id, OWNER_ID)

    def test_card_from_other_collection(self, session):
        level = create(session, make_collection(session), "L1")
        stranger = make_card(session, make_collection(session, name="Other"), front="a", back="b")
        with pytest.raises(InvalidArgumentError):
            level_service.add_cards_to_level(session, level.level_id, OWNER_ID, [stranger.id])


class TestLevelCards:
    def test_locked_level_cards_are_hidden(self, session):
        collection = make_collection(session)
        first = create(session, collection, "L1")
        second = create(session, collection, "L2", prerequisite_ids=[first.level_id])

        with pytest.raises(AccessDeniedError):
            level_service.get_level_cards(session, second.level_id, OWNER_ID)

    def test_attempt_statistics_and_pagination(self, session, review_engine, now):
        collection = make_collection(session)
        cards = [
            make_card(session, collection, front=f"w{i}", back=f"m{i}", direction=FlashcardDirection.DIRECT)
            for i in range(3)
        ]
        level = create(session, collection, "L1")
        level_service.add_cards_to_level(session, level.level_id, OWNER_ID, [c.id for c in cards])
        for rating in (3, 1, 4, 2):
            review_engine.review(session, OWNER_ID, cards[0].id, rating, CardSide.DIRECT, now=now)

        page = level_service.get_level_cards(session, level.level_id, OWNER_ID, page=1, per_page=2)

        assert page.total == 3
        assert len(page.cards) == 2
        first = page.cards[0]
        assert (first.correct_attempts, first.total_attempts) == (2, 4)
        assert first.success_rate == 0.5
        assert first.free_content_front == "w0"
        assert page.cards[1].total_attempts == 0

        second_page = level_service.get_level_cards(session, level.level_id, OWNER_ID, page=2, per_page=2)
        assert [c.flashcard_id for c in second_page.cards] == [cards[2].id]
