"""
Answer graders.

The exact grader accepts only a normalized exact match and schedules a
rating-4 review for it; mismatches return the expected answer without
touching progress. The fuzzy grader (fill-in cards) turns edit-distance
similarity into a rating and always schedules a review.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple, Union
from sqlmodel import Session

from flashcard_engine.core.exceptions import InvalidStateError
from flashcard_engine.models.enums import CardSide, FlashcardDirection, FILLIN_DIRECTIONS
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.schemas.review import AnswerResponse
from flashcard_engine.services import access_service
from flashcard_engine.services.content_service import CardContent, resolve_card_content
from flashcard_engine.services.review_service import ReviewEngine, validate_side_for_direction
from flashcard_engine.utils.text_utils import calculate_similarity, normalize_answer, split_alternatives

logger = logging.getLogger(__name__)

RATING_NAMES = {1: "Again", 2: "Hard", 3: "Good", 4: "Easy"}


def similarity_to_rating(similarity: float) -> int:
    """Map a similarity in [0, 1] to a review rating."""
    if similarity >= 0.99:
        return 4
    if similarity >= 0.90:
        return 3
    if similarity >= 0.70:
        return 2
    return 1


def best_similarity(expected: str, provided: str, is_free_content: bool) -> float:
    """
    Similarity of an answer against the expected text.

    Free-content answers may list ';'-separated alternatives; the best
    matching alternative counts.
    """
    if is_free_content and ";" in expected:
        alternatives = split_alternatives(expected)
        if alternatives:
            return max(calculate_similarity(alternative, provided) for alternative in alternatives)
    return calculate_similarity(expected, provided)


def _prepare(
    session: Session,
    user_id: int,
    flashcard_id: int,
    side: Union[CardSide, str]
) -> Tuple[Flashcard, CardSide, CardContent, str]:
    flashcard = access_service.get_flashcard(session, flashcard_id)
    if flashcard.direction == FlashcardDirection.JUST_INFORMATION:
        raise InvalidStateError("Information cards cannot be graded")
    card_side = validate_side_for_direction(side, flashcard.direction)
    access_service.verify_study_access(session, flashcard, user_id)

    content = resolve_card_content(session, flashcard)
    expected = content.expected_answer(card_side)
    if expected is None or not expected.strip():
        raise InvalidStateError(
            f"Flashcard {flashcard_id} has no content to grade on side '{card_side.value}'"
        )
    return flashcard, card_side, content, expected


def check_direct_answer(
    session: Session,
    engine: ReviewEngine,
    user_id: int,
    flashcard_id: int,
    side: Union[CardSide, str],
    answer: str,
    now: Optional[datetime] = None
) -> AnswerResponse:
    """
    Grade a typed answer by exact match.

    Args:
        session: Database session
        engine: Review engine used for correct answers
        user_id: Learner ID
        flashcard_id: Flashcard ID
        side: Answered side
        answer: Learner's answer
        now: Review time (defaults to utcnow)

    Returns:
        AnswerResponse; next_review is set only for correct answers

    Raises:
        InvalidStateError: Information card or missing content
    """
    flashcard, card_side, content, expected = _prepare(session, user_id, flashcard_id, side)
    normalized_expected = normalize_answer(expected)

    if normalize_answer(answer) != normalized_expected:
        logger.debug(f"Incorrect answer for flashcard {flashcard_id} ({card_side.value}) by user {user_id}")
        return AnswerResponse(
            correct=False,
            expected=normalized_expected,
            message=f"Incorrect. The correct answer was: {expected.strip()}",
            next_review=None,
            is_free_content=content.is_free_content,
            rating=None,
        )

    result = engine.review(session, user_id, flashcard.id, 4, card_side, now=now)
    return AnswerResponse(
        correct=True,
        expected=normalized_expected,
        message="Correct! Well done.",
        next_review=result.progress.next_review_at,
        is_free_content=content.is_free_content,
        rating=4,
    )


def submit_fillin_answer(
    session: Session,
    engine: ReviewEngine,
    user_id: int,
    flashcard_id: int,
    side: Union[CardSide, str],
    answer: str,
    now: Optional[datetime] = None
) -> AnswerResponse:
    """
    Grade a fill-in answer by similarity and schedule the resulting rating.

    Raises:
        InvalidStateError: Not a fill-in card, or missing content
    """
    flashcard = access_service.get_flashcard(session, flashcard_id)
    if flashcard.direction != FlashcardDirection.JUST_INFORMATION and flashcard.direction not in FILLIN_DIRECTIONS:
        raise InvalidStateError(
            f"Flashcard {flashcard_id} has direction '{flashcard.direction.value}', not a fill-in direction"
        )

    flashcard, card_side, content, expected = _prepare(session, user_id, flashcard_id, side)

    similarity = best_similarity(expected, answer, content.is_free_content)
    rating = similarity_to_rating(similarity)
    result = engine.review(session, user_id, flashcard.id, rating, card_side, now=now)

    return AnswerResponse(
        correct=rating >= 3,
        expected=normalize_answer(expected),
        message=f"Similarity: {similarity * 100:.0f}%, Rating: {RATING_NAMES[rating]}",
        next_review=result.progress.next_review_at,
        is_free_content=content.is_free_content,
        similarity=similarity,
        rating=rating,
    )
