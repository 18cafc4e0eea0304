"""
Flashcard management service.

Creating, listing, reordering and deleting flashcards, changing their
direction, and importing collection items as flashcards.
"""
import logging
import random
from datetime import datetime
from typing import Dict, List, Optional
from sqlmodel import Session, select, func

from flashcard_engine.core.exceptions import InvalidArgumentError, NotFoundError
from flashcard_engine.models.collection_item import CollectionItem
from flashcard_engine.models.definition import Definition
from flashcard_engine.models.enums import FlashcardDirection, FlashcardStatus, QUIZ_DIRECTIONS
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.flashcard_level_item import FlashcardLevelItem
from flashcard_engine.models.flashcard_quiz_option import FlashcardQuizOption
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.models.user_flashcard_progress import UserFlashcardProgress
from flashcard_engine.models.user_quiz_answer_history import UserQuizAnswerHistory
from flashcard_engine.schemas.flashcard import (
    CreateFlashcardRequest,
    FlashcardListItem,
    FlashcardListResponse,
    FlashcardResponse,
    ImportResponse,
    SideProgress,
)
from flashcard_engine.schemas.review import ProgressResponse
from flashcard_engine.services import access_service, quiz_service
from flashcard_engine.services.content_service import resolve_card_content
from flashcard_engine.services.progress_service import change_progress_direction, initialize_sides
from flashcard_engine.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def _next_position(session: Session, column, collection_column, collection_id: int) -> int:
    max_position = session.exec(select(func.max(column)).where(collection_column == collection_id)).one()
    return 0 if max_position is None else max_position + 1


def _flashcard_response(flashcard: Flashcard, progress: List[UserFlashcardProgress], created: bool) -> FlashcardResponse:
    return FlashcardResponse(
        flashcard_id=flashcard.id,
        collection_id=flashcard.collection_id,
        item_id=flashcard.item_id,
        position=flashcard.position,
        direction=flashcard.direction,
        created=created,
        progress=[ProgressResponse.model_validate(row) for row in progress],
    )


def _find_existing_item(
    session: Session,
    collection_id: int,
    request: CreateFlashcardRequest
) -> Optional[CollectionItem]:
    query = select(CollectionItem).where(CollectionItem.collection_id == collection_id)
    if request.definition_id is not None:
        query = query.where(CollectionItem.definition_id == request.definition_id)
    else:
        query = query.where(
            CollectionItem.definition_id.is_(None),  # type: ignore
            CollectionItem.free_content_front == request.free_content_front.strip(),
            CollectionItem.free_content_back == request.free_content_back.strip()
        )
    return session.exec(query.order_by(CollectionItem.id)).first()


def create_flashcard(
    session: Session,
    collection_id: int,
    request: CreateFlashcardRequest,
    now: Optional[datetime] = None
) -> FlashcardResponse:
    """
    Add a flashcard to a collection owned by the user.

    An existing card for the same content is reused and returned with
    created=False.

    Args:
        session: Database session
        collection_id: Target collection
        request: Card content and direction
        now: Current time (defaults to utcnow)

    Returns:
        FlashcardResponse with the user's progress rows

    Raises:
        AccessDeniedError: If the user does not own the collection
        InvalidArgumentError: If the content is incomplete or ambiguous
        NotFoundError: If the linked definition does not exist
    """
    if now is None:
        now = utcnow()
    user_id = request.user_id
    access_service.verify_collection_ownership(session, collection_id, user_id)

    has_front = bool(request.free_content_front and request.free_content_front.strip())
    has_back = bool(request.free_content_back and request.free_content_back.strip())
    if request.definition_id is not None:
        if has_front or has_back:
            raise InvalidArgumentError("Provide either definition_id or free content, not both")
        if not session.get(Definition, request.definition_id):
            raise NotFoundError(f"Definition with id {request.definition_id} not found")
    elif not (has_front and has_back):
        raise InvalidArgumentError("Free-content flashcards need both a front and a back")

    if request.correct_answer_text is not None and request.direction not in QUIZ_DIRECTIONS:
        raise InvalidArgumentError("correct_answer_text is only allowed for quiz directions")

    item = _find_existing_item(session, collection_id, request)
    if item is not None:
        existing = session.exec(
            select(Flashcard).where(Flashcard.item_id == item.id).order_by(Flashcard.id)
        ).first()
        if existing is not None:
            progress = initialize_sides(session, user_id, existing, now=now)
            logger.info(f"Flashcard for item {item.id} already exists as {existing.id}")
            return _flashcard_response(existing, progress, created=False)
    else:
        item = CollectionItem(
            collection_id=collection_id,
            definition_id=request.definition_id,
            free_content_front=request.free_content_front.strip() if has_front else None,
            free_content_back=request.free_content_back.strip() if has_back else None,
            notes=request.notes,
            position=_next_position(session, CollectionItem.position, CollectionItem.collection_id, collection_id),
            auto_progress=request.auto_progress,
            added_at=now,
        )
        session.add(item)
        session.flush()

    flashcard = Flashcard(
        collection_id=collection_id,
        item_id=item.id,
        position=_next_position(session, Flashcard.position, Flashcard.collection_id, collection_id),
        direction=request.direction,
        created_at=now,
    )
    session.add(flashcard)
    session.flush()

    progress = initialize_sides(session, user_id, flashcard, now=now)

    if flashcard.direction in QUIZ_DIRECTIONS:
        answer = request.correct_answer_text
        if answer is None or not answer.strip():
            answer = quiz_service.derive_correct_answer(
                session, flashcard, quiz_service.primary_side(flashcard.direction)
            )
        quiz_service.set_quiz_answer(session, flashcard, answer.strip())

    logger.info(f"Created flashcard {flashcard.id} ({flashcard.direction.value}) in collection {collection_id}")
    return _flashcard_response(flashcard, progress, created=True)


def delete_flashcard(session: Session, flashcard_id: int, user_id: int) -> None:
    """Delete a flashcard with its history, quiz data, level membership and progress."""
    flashcard = access_service.get_flashcard(session, flashcard_id)
    access_service.verify_collection_ownership(session, flashcard.collection_id, user_id)

    dependents = (
        FlashcardReviewHistory,
        UserQuizAnswerHistory,
        FlashcardQuizOption,
        FlashcardLevelItem,
        UserFlashcardProgress,
    )
    for model in dependents:
        rows = session.exec(select(model).where(model.flashcard_id == flashcard_id)).all()
        for row in rows:
            session.delete(row)
    session.flush()

    session.delete(flashcard)
    session.flush()
    logger.info(f"Deleted flashcard {flashcard_id}")


def update_flashcard_position(
    session: Session,
    flashcard_id: int,
    user_id: int,
    new_position: int
) -> List[Flashcard]:
    """
    Move a flashcard and renumber the collection contiguously from 0.

    Positions past the end move the card to the end.

    Returns:
        The collection's flashcards in their new order
    """
    flashcard = access_service.get_flashcard(session, flashcard_id)
    access_service.verify_collection_ownership(session, flashcard.collection_id, user_id)
    if new_position < 0:
        raise InvalidArgumentError("Position must not be negative")

    cards = [
        card for card in session.exec(
            select(Flashcard)
            .where(Flashcard.collection_id == flashcard.collection_id)
            .order_by(Flashcard.position, Flashcard.id)
        ).all()
        if card.id != flashcard.id
    ]
    cards.insert(min(new_position, len(cards)), flashcard)

    for position, card in enumerate(cards):
        card.position = position
        session.add(card)
    session.flush()

    logger.info(f"Moved flashcard {flashcard_id} to position {flashcard.position}")
    return cards


def change_direction(
    session: Session,
    flashcard_id: int,
    user_id: int,
    direction: FlashcardDirection,
    now: Optional[datetime] = None
) -> FlashcardResponse:
    """
    Change a flashcard's direction, archiving and restoring progress sides.

    Returns:
        FlashcardResponse with the user's live progress after the change
    """
    flashcard = access_service.get_flashcard(session, flashcard_id)
    access_service.verify_collection_ownership(session, flashcard.collection_id, user_id)

    flashcard.direction = direction
    session.add(flashcard)
    session.flush()

    progress = change_progress_direction(session, user_id, flashcard, direction, now=now)
    return _flashcard_response(flashcard, progress, created=False)


def import_from_collection(
    session: Session,
    collection_id: int,
    user_id: int,
    now: Optional[datetime] = None
) -> ImportResponse:
    """
    Create a Both flashcard for every collection item that has none.

    Returns:
        Counts of imported and skipped items
    """
    if now is None:
        now = utcnow()
    access_service.verify_collection_ownership(session, collection_id, user_id)

    items = session.exec(
        select(CollectionItem)
        .where(CollectionItem.collection_id == collection_id)
        .order_by(CollectionItem.position, CollectionItem.id)
    ).all()
    carded_item_ids = set(session.exec(
        select(Flashcard.item_id).where(Flashcard.collection_id == collection_id)
    ).all())

    next_position = _next_position(session, Flashcard.position, Flashcard.collection_id, collection_id)
    imported = 0
    for item in items:
        if item.id in carded_item_ids:
            continue
        flashcard = Flashcard(
            collection_id=collection_id,
            item_id=item.id,
            position=next_position,
            direction=FlashcardDirection.BOTH,
            created_at=now,
        )
        session.add(flashcard)
        session.flush()
        initialize_sides(session, user_id, flashcard, now=now)
        next_position += 1
        imported += 1

    skipped = len(items) - imported
    logger.info(f"Imported {imported} flashcards into collection {collection_id} ({skipped} skipped)")
    return ImportResponse(imported=imported, skipped=skipped)


def _side_progress(progress: UserFlashcardProgress, now: datetime) -> SideProgress:
    next_review_at = progress.next_review_at
    if next_review_at is not None and next_review_at <= now:
        next_review_at = None
    return SideProgress(
        card_side=progress.card_side,
        status=progress.status,
        interval=progress.interval,
        review_count=progress.review_count,
        next_review_at=next_review_at,
    )


def _is_due(progress: UserFlashcardProgress, now: datetime) -> bool:
    return progress.next_review_at is None or progress.next_review_at <= now


def list_flashcards(
    session: Session,
    collection_id: int,
    user_id: int,
    status: Optional[FlashcardStatus] = None,
    due: bool = False,
    flashcard_id: Optional[int] = None,
    page: int = 1,
    per_page: int = 20,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> FlashcardListResponse:
    """
    List a collection's flashcards with the user's progress.

    Missing progress rows are created first. When listing due cards every
    side is its own entry ordered by due time; otherwise sides of the same
    card are grouped into one entry in position order. Quiz cards carry a
    freshly generated question.

    Args:
        session: Database session
        collection_id: Collection ID
        user_id: Learner ID
        status: Only sides with this status
        due: Only sides due now
        flashcard_id: Only this flashcard
        page: 1-based page
        per_page: Entries per page
        now: Current time (defaults to utcnow)
        rng: Random source for quiz options

    Returns:
        FlashcardListResponse
    """
    if now is None:
        now = utcnow()
    if page < 1 or per_page < 1:
        raise InvalidArgumentError("page and per_page must be positive")
    access_service.verify_collection_access(session, collection_id, user_id)

    flashcards = session.exec(
        select(Flashcard)
        .where(Flashcard.collection_id == collection_id)
        .order_by(Flashcard.position, Flashcard.id)
    ).all()
    for flashcard in flashcards:
        initialize_sides(session, user_id, flashcard, now=now)

    rows = session.exec(
        select(UserFlashcardProgress, Flashcard)
        .join(Flashcard, Flashcard.id == UserFlashcardProgress.flashcard_id)
        .where(
            Flashcard.collection_id == collection_id,
            UserFlashcardProgress.user_id == user_id,
            UserFlashcardProgress.archived == False  # noqa: E712
        )
        .order_by(Flashcard.position, Flashcard.id, UserFlashcardProgress.card_side)
    ).all()

    due_count = sum(1 for progress, _ in rows if _is_due(progress, now))

    selected = [
        (progress, flashcard) for progress, flashcard in rows
        if (status is None or progress.status == status)
        and (not due or _is_due(progress, now))
        and (flashcard_id is None or flashcard.id == flashcard_id)
    ]

    groups: List[tuple] = []
    if due:
        selected.sort(key=lambda row: (row[0].next_review_at or datetime.min, row[0].id))
        groups = [(flashcard, [progress]) for progress, flashcard in selected]
    else:
        by_card: Dict[int, tuple] = {}
        for progress, flashcard in selected:
            if flashcard.id not in by_card:
                by_card[flashcard.id] = (flashcard, [])
                groups.append(by_card[flashcard.id])
            by_card[flashcard.id][1].append(progress)

    total = len(groups)
    page_groups = groups[(page - 1) * per_page:page * per_page]

    entries = []
    for flashcard, sides in page_groups:
        content = resolve_card_content(session, flashcard)
        quiz = None
        if flashcard.direction in QUIZ_DIRECTIONS:
            side = sides[0].card_side if len(sides) == 1 else None
            try:
                quiz = quiz_service.build_quiz_question(session, user_id, flashcard, side, rng)
            except NotFoundError as e:
                logger.warning(f"Cannot build quiz for flashcard {flashcard.id}: {e}")
        entries.append(FlashcardListItem(
            flashcard_id=flashcard.id,
            position=flashcard.position,
            direction=flashcard.direction,
            definition_id=content.definition_id,
            word=content.word,
            definition=content.definition,
            free_content_front=content.free_content_front,
            free_content_back=content.free_content_back,
            notes=content.notes,
            is_free_content=content.is_free_content,
            sides=[_side_progress(progress, now) for progress in sides],
            quiz=quiz,
        ))

    return FlashcardListResponse(
        flashcards=entries,
        total=total,
        due_count=due_count,
        page=page,
        per_page=per_page,
    )
