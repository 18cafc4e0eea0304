"""
Quiz generator.

Builds four-option multiple-choice questions for quiz flashcards. Wrong
options come first from the learner's own past mistakes on the card
(exploitation), then from other answers in the same collection
(exploration), then from placeholders.
"""
import logging
import random
from datetime import datetime
from typing import List, Optional, Union
from sqlmodel import Session, select, func

from flashcard_engine.core.exceptions import InvalidStateError, NotFoundError
from flashcard_engine.models.collection_item import CollectionItem
from flashcard_engine.models.definition import Definition
from flashcard_engine.models.enums import CardSide, FlashcardDirection, QUIZ_DIRECTIONS
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.flashcard_quiz_option import FlashcardQuizOption
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.models.user_quiz_answer_history import UserQuizAnswerHistory
from flashcard_engine.schemas.quiz import QuizQuestionResponse, QuizSubmitResponse
from flashcard_engine.services import access_service
from flashcard_engine.services.content_service import resolve_card_content
from flashcard_engine.services.progress_service import required_sides
from flashcard_engine.services.review_service import ReviewEngine, validate_side_for_direction
from flashcard_engine.utils.text_utils import normalize_answer
from flashcard_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

OPTION_COUNT = 4
MAX_EXPLOITATION_DISTRACTORS = 2


def _require_quiz_direction(flashcard: Flashcard) -> None:
    if flashcard.direction not in QUIZ_DIRECTIONS:
        raise InvalidStateError(
            f"Flashcard {flashcard.id} has direction '{flashcard.direction.value}', not a quiz direction"
        )


def primary_side(direction: FlashcardDirection) -> CardSide:
    """Side whose correct answer is cached in FlashcardQuizOption."""
    return required_sides(direction)[0]


def derive_correct_answer(session: Session, flashcard: Flashcard, side: CardSide) -> str:
    """
    Compute the correct answer of a side from the card content.

    Raises:
        NotFoundError: If the card has neither dictionary nor free content for the side
    """
    answer = resolve_card_content(session, flashcard).expected_answer(side)
    if answer is None or not answer.strip():
        raise NotFoundError(f"No correct answer available for flashcard {flashcard.id} ({side.value})")
    return answer.strip()


def set_quiz_answer(session: Session, flashcard: Flashcard, correct_answer_text: str) -> FlashcardQuizOption:
    """Store (or overwrite) the cached correct answer of a quiz card."""
    option = session.exec(
        select(FlashcardQuizOption).where(FlashcardQuizOption.flashcard_id == flashcard.id)
    ).first()
    if option is None:
        option = FlashcardQuizOption(flashcard_id=flashcard.id, correct_answer_text=correct_answer_text)
    else:
        option.correct_answer_text = correct_answer_text
    session.add(option)
    session.flush()
    return option


def get_correct_answer(session: Session, flashcard: Flashcard, side: CardSide) -> str:
    """
    Correct answer for a quiz side.

    The primary side reads the cached answer, computing and caching it when
    absent; the other side of a QuizBoth card is derived from content.
    """
    if side != primary_side(flashcard.direction):
        return derive_correct_answer(session, flashcard, side)

    option = session.exec(
        select(FlashcardQuizOption).where(FlashcardQuizOption.flashcard_id == flashcard.id)
    ).first()
    if option:
        return option.correct_answer_text

    answer = derive_correct_answer(session, flashcard, side)
    set_quiz_answer(session, flashcard, answer)
    logger.debug(f"Cached quiz answer for flashcard {flashcard.id}")
    return answer


def generate_and_set_quiz_options(session: Session, flashcard_id: int, user_id: int) -> FlashcardQuizOption:
    """
    Recompute and store the correct answer of a quiz card owned by the user.

    Raises:
        AccessDeniedError: If the user does not own the card's collection
        InvalidStateError: If the card is not a quiz card
        NotFoundError: If the card has no usable content
    """
    flashcard = access_service.get_flashcard(session, flashcard_id)
    access_service.verify_collection_ownership(session, flashcard.collection_id, user_id)
    _require_quiz_direction(flashcard)

    answer = derive_correct_answer(session, flashcard, primary_side(flashcard.direction))
    option = set_quiz_answer(session, flashcard, answer)
    logger.info(f"Set quiz answer for flashcard {flashcard_id}")
    return option


def exploitation_distractors(
    session: Session,
    user_id: int,
    flashcard_id: int,
    correct_answer: str,
    limit: int = MAX_EXPLOITATION_DISTRACTORS
) -> List[str]:
    """
    The user's most frequent, then most recent, wrong choices on this card.
    """
    last_answered = func.max(UserQuizAnswerHistory.answered_at)
    rows = session.exec(
        select(UserQuizAnswerHistory.selected_option_text, func.count().label("times"), last_answered)
        .where(
            UserQuizAnswerHistory.user_id == user_id,
            UserQuizAnswerHistory.flashcard_id == flashcard_id,
            UserQuizAnswerHistory.is_correct_selection == False  # noqa: E712
        )
        .group_by(UserQuizAnswerHistory.selected_option_text)
        .order_by(func.count().desc(), last_answered.desc())
    ).all()

    excluded = {normalize_answer(correct_answer)}
    distractors = []
    for text, _, _ in rows:
        if normalize_answer(text) in excluded:
            continue
        distractors.append(text)
        excluded.add(normalize_answer(text))
        if len(distractors) >= limit:
            break
    return distractors


def exploration_candidates(session: Session, flashcard: Flashcard, side: CardSide) -> List[str]:
    """
    Answers of the same kind from other cards of the collection.

    Definitions for the direct side, words for the reverse side, with free
    content standing in for unlinked items.
    """
    rows = session.exec(
        select(
            Definition.word,
            Definition.definition,
            CollectionItem.free_content_front,
            CollectionItem.free_content_back,
        )
        .select_from(Flashcard)
        .join(CollectionItem, CollectionItem.id == Flashcard.item_id)
        .outerjoin(Definition, Definition.id == CollectionItem.definition_id)
        .where(
            Flashcard.collection_id == flashcard.collection_id,
            Flashcard.id != flashcard.id
        )
    ).all()

    candidates = []
    for word, definition, front, back in rows:
        if side == CardSide.DIRECT:
            text = definition if definition is not None else back
        else:
            text = word if word is not None else front
        if text and text.strip():
            candidates.append(text.strip())
    return candidates


def build_options(
    session: Session,
    user_id: int,
    flashcard: Flashcard,
    side: CardSide,
    correct_answer: str,
    rng: Optional[random.Random] = None
) -> List[str]:
    """
    Four shuffled options containing the correct answer exactly once.

    Args:
        session: Database session
        user_id: Learner ID
        flashcard: Quiz flashcard
        side: Asked side
        correct_answer: Correct option text
        rng: Random source (defaults to the module generator)

    Returns:
        List of OPTION_COUNT option texts
    """
    rng = rng or random.Random()
    needed = OPTION_COUNT - 1

    distractors = exploitation_distractors(session, user_id, flashcard.id, correct_answer)
    taken = {normalize_answer(correct_answer)} | {normalize_answer(d) for d in distractors}

    pool = []
    for candidate in exploration_candidates(session, flashcard, side):
        key = normalize_answer(candidate)
        if key not in taken:
            taken.add(key)
            pool.append(candidate)
    rng.shuffle(pool)
    distractors.extend(pool[:needed - len(distractors)])

    n = 1
    while len(distractors) < needed:
        placeholder = f"Fallback Option {n}"
        n += 1
        if normalize_answer(placeholder) in taken:
            continue
        taken.add(normalize_answer(placeholder))
        distractors.append(placeholder)

    options = [correct_answer] + distractors[:needed]
    rng.shuffle(options)
    return options


def build_quiz_question(
    session: Session,
    user_id: int,
    flashcard: Flashcard,
    side: Optional[CardSide] = None,
    rng: Optional[random.Random] = None
) -> QuizQuestionResponse:
    """
    Render a quiz flashcard as a question.

    QuizBoth cards pick a side at random unless one is given.

    Raises:
        InvalidStateError: If the card is not a quiz card
        NotFoundError: If the card has no usable content
    """
    _require_quiz_direction(flashcard)
    rng = rng or random.Random()

    sides = required_sides(flashcard.direction)
    if side is None:
        side = rng.choice(sides) if len(sides) > 1 else sides[0]
    else:
        side = validate_side_for_direction(side, flashcard.direction)

    question = resolve_card_content(session, flashcard).question(side)
    if question is None or not question.strip():
        raise NotFoundError(f"No question text available for flashcard {flashcard.id} ({side.value})")

    correct_answer = get_correct_answer(session, flashcard, side)
    return QuizQuestionResponse(
        flashcard_id=flashcard.id,
        direction=flashcard.direction,
        card_side=side,
        question=question.strip(),
        options=build_options(session, user_id, flashcard, side, correct_answer, rng),
    )


def get_next_quiz(
    session: Session,
    user_id: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> Optional[QuizQuestionResponse]:
    """
    The earliest-due quiz side of the user, or None when nothing is due.
    """
    if now is None:
        now = utcnow()

    rows = session.exec(
        select(UserFlashcardProgress, Flashcard)
        .join(Flashcard, Flashcard.id == UserFlashcardProgress.flashcard_id)
        .where(
            UserFlashcardProgress.user_id == user_id,
            UserFlashcardProgress.archived == False,  # noqa: E712
            UserFlashcardProgress.next_review_at.is_not(None),  # type: ignore
            UserFlashcardProgress.next_review_at <= now,
            Flashcard.direction.in_(QUIZ_DIRECTIONS)  # type: ignore
        )
        .order_by(UserFlashcardProgress.next_review_at, UserFlashcardProgress.id)
    ).all()

    for progress, flashcard in rows:
        if access_service.can_study(session, flashcard, user_id):
            return build_quiz_question(session, user_id, flashcard, progress.card_side, rng)
    return None


def submit_quiz_answer(
    session: Session,
    engine: ReviewEngine,
    user_id: int,
    flashcard_id: int,
    side: Union[CardSide, str],
    selected_option: str,
    presented_options: Optional[List[str]] = None,
    now: Optional[datetime] = None
) -> QuizSubmitResponse:
    """
    Grade a chosen option, log it and schedule the review.

    Correct choices are rated 4, wrong ones 1. The answer is logged before the
    review is applied, in the same transaction.
    """
    if now is None:
        now = utcnow()

    flashcard = access_service.get_flashcard(session, flashcard_id)
    _require_quiz_direction(flashcard)
    card_side = validate_side_for_direction(side, flashcard.direction)
    access_service.verify_study_access(session, flashcard, user_id)

    correct_answer = get_correct_answer(session, flashcard, card_side)
    is_correct = normalize_answer(selected_option) == normalize_answer(correct_answer)

    session.add(UserQuizAnswerHistory(
        user_id=user_id,
        flashcard_id=flashcard.id,
        selected_option_text=selected_option,
        is_correct_selection=is_correct,
        presented_options=list(presented_options or []),
        answered_at=now,
    ))
    session.flush()

    rating = 4 if is_correct else 1
    result = engine.review(session, user_id, flashcard.id, rating, card_side, now=now)

    return QuizSubmitResponse(
        correct=is_correct,
        correct_answer=correct_answer,
        rating=rating,
        next_review=result.progress.next_review_at,
    )
