"""
Auto-progression lookup.

A successful review of a dictionary-linked card also credits other cards of
the same collection whose word contains the reviewed word as a whole token
(e.g. reviewing "run" credits "run out"). This module only finds those
cards; the review engine applies the synthetic reviews.
"""
import re
import logging
from typing import List, Tuple
from sqlmodel import Session, select

from flashcard_engine.models.collection_item import CollectionItem
from flashcard_engine.models.definition import Definition
from flashcard_engine.models.enums import CardSide, FlashcardStatus
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress

logger = logging.getLogger(__name__)


def word_boundary_pattern(word: str) -> "re.Pattern[str]":
    """
    Whole-token pattern for a word.

    Letters and apostrophes count as word characters, so "don't" is one token
    and "word-play" contains "word". Matching is case-sensitive.
    """
    return re.compile(r"(?:^|[^a-zA-Z'])" + re.escape(word) + r"(?:[^a-zA-Z']|$)")


def find_related_cards(
    session: Session,
    user_id: int,
    flashcard: Flashcard,
    word: str,
    side: CardSide
) -> List[Tuple[Flashcard, UserFlashcardProgress]]:
    """
    Find cards that should receive credit from a successful review.

    Candidates are other flashcards in the same collection, linked to a
    dictionary word containing `word` as a whole token, whose item allows
    auto-progression and whose live progress on `side` is not yet graduated.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard: The reviewed flashcard
        word: Word of the reviewed flashcard
        side: Side that was reviewed

    Returns:
        (flashcard, progress) pairs to credit
    """
    if not word or not word.strip():
        return []

    rows = session.exec(
        select(Flashcard, UserFlashcardProgress, Definition.word)
        .join(CollectionItem, CollectionItem.id == Flashcard.item_id)
        .join(Definition, Definition.id == CollectionItem.definition_id)
        .join(UserFlashcardProgress, UserFlashcardProgress.flashcard_id == Flashcard.id)
        .where(
            Flashcard.collection_id == flashcard.collection_id,
            Flashcard.id != flashcard.id,
            CollectionItem.auto_progress == True,  # noqa: E712
            UserFlashcardProgress.user_id == user_id,
            UserFlashcardProgress.card_side == side,
            UserFlashcardProgress.archived == False,  # noqa: E712
            UserFlashcardProgress.status != FlashcardStatus.GRADUATED
        )
        .order_by(Flashcard.position, Flashcard.id)
    ).all()

    pattern = word_boundary_pattern(word)
    related = [(card, progress) for card, progress, other_word in rows if pattern.search(other_word)]

    if related:
        logger.debug(
            f"Word '{word}' relates to flashcards {[card.id for card, _ in related]} "
            f"in collection {flashcard.collection_id}"
        )
    return related
