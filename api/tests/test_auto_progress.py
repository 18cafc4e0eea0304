"""
Tests for auto-progression of lexically related cards.
"""
import pytest
from sqlmodel import select

from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.services import auto_progress_service
from flashcard_engine.services.auto_progress_service import find_related_cards, word_boundary_pattern
from flashcard_engine.services.progress_service import fetch_progress

from conftest import OWNER_ID, make_card, make_collection


def review_count(session, card, side=CardSide.DIRECT):
    return fetch_progress(session, OWNER_ID, card.id, side).review_count


class TestWordBoundary:
    @pytest.mark.parametrize("text", ["run", "run out", "to run", "hit-and-run", "run, walk"])
    def test_whole_token_matches(self, text):
        assert word_boundary_pattern("run").search(text)

    @pytest.mark.parametrize("text", ["running", "rerun", "run's", "Run out", "brunch"])
    def test_partial_or_other_case_does_not_match(self, text):
        assert not word_boundary_pattern("run").search(text)

    def test_special_characters_are_escaped(self):
        assert word_boundary_pattern("c++").search("learn c++ today")
        assert not word_boundary_pattern("a.b").search("axb")


class TestFindRelatedCards:
    def test_filters(self, session, review_engine, now):
        collection = make_collection(session)
        source = make_card(session, collection, word="run")
        related = make_card(session, collection, word="run out")
        make_card(session, collection, word="running")
        make_card(session, collection, word="run away", auto_progress=False)
        graduated = make_card(session, collection, word="run into")
        fetch_progress(session, OWNER_ID, graduated.id, CardSide.DIRECT).status = FlashcardStatus.GRADUATED
        make_card(session, collection, front="run", back="free text")
        make_card(session, make_collection(session, name="Other"), word="run down")
        session.flush()

        found = find_related_cards(session, OWNER_ID, source, "run", CardSide.DIRECT)

        assert [card.id for card, _ in found] == [related.id]

    def test_archived_side_is_skipped(self, session):
        collection = make_collection(session)
        source = make_card(session, collection, word="run")
        related = make_card(session, collection, word="run out")
        fetch_progress(session, OWNER_ID, related.id, CardSide.REVERSE).archived = True
        session.flush()

        assert find_related_cards(session, OWNER_ID, source, "run", CardSide.REVERSE) == []
        assert len(find_related_cards(session, OWNER_ID, source, "run", CardSide.DIRECT)) == 1


class TestAutoProgression:
    def test_successful_review_credits_related_card(self, session, review_engine, now):
        collection = make_collection(session)
        source = make_card(session, collection, word="run")
        related = make_card(session, collection, word="run out")

        result = review_engine.review(session, OWNER_ID, source.id, 3, CardSide.DIRECT, now=now)

        assert [p.flashcard_id for p in result.auto_progressed] == [related.id]
        assert review_count(session, related) == 1
        assert review_count(session, related, CardSide.REVERSE) == 0
        event = session.exec(
            select(FlashcardReviewHistory).where(FlashcardReviewHistory.flashcard_id == related.id)
        ).one()
        assert event.rating == 4

    def test_hard_review_does_not_propagate(self, session, review_engine, now):
        collection = make_collection(session)
        source = make_card(session, collection, word="run")
        related = make_card(session, collection, word="run out")

        result = review_engine.review(session, OWNER_ID, source.id, 2, CardSide.DIRECT, now=now)

        assert result.auto_progressed == []
        assert review_count(session, related) == 0

    def test_free_content_does_not_propagate(self, session, review_engine, now):
        collection = make_collection(session)
        source = make_card(session, collection, front="run", back="to move fast")
        related = make_card(session, collection, word="run out")

        review_engine.review(session, OWNER_ID, source.id, 4, CardSide.DIRECT, now=now)

        assert review_count(session, related) == 0

    def test_propagation_is_one_hop(self, session, review_engine, now, monkeypatch):
        collection = make_collection(session)
        a = make_card(session, collection, word="alpha")
        b = make_card(session, collection, word="beta")
        c = make_card(session, collection, word="gamma")
        graph = {a.id: [b], b.id: [c]}

        def fake_related(session, user_id, flashcard, word, side):
            return [(card, fetch_progress(session, user_id, card.id, side)) for card in graph.get(flashcard.id, [])]

        monkeypatch.setattr(auto_progress_service, "find_related_cards", fake_related)

        review_engine.review(session, OWNER_ID, a.id, 4, CardSide.DIRECT, now=now)

        assert review_count(session, b) == 1
        assert review_count(session, c) == 0

    def test_transitively_related_card_is_credited_once(self, session, review_engine, now):
        collection = make_collection(session)
        a = make_card(session, collection, word="run")
        b = make_card(session, collection, word="run out")
        c = make_card(session, collection, word="run out of time")

        review_engine.review(session, OWNER_ID, a.id, 4, CardSide.DIRECT, now=now)

        assert review_count(session, b) == 1
        assert review_count(session, c) == 1
