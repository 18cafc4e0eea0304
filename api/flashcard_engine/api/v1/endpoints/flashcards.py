"""
Flashcard study endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import Optional
import logging

from flashcard_engine.core.database import get_session
from flashcard_engine.models.enums import FlashcardStatus
from flashcard_engine.schemas.flashcard import (
    ChangeDirectionRequest,
    CreateFlashcardRequest,
    FlashcardListResponse,
    FlashcardResponse,
    ImportResponse,
    UpdatePositionRequest,
)
from flashcard_engine.schemas.quiz import (
    QuizOptionResponse,
    QuizQuestionResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
)
from flashcard_engine.schemas.review import (
    AnswerRequest,
    AnswerResponse,
    ProgressResponse,
    ReviewRequest,
    ReviewResponse,
    UserRequest,
)
from flashcard_engine.schemas.streak import StreakResponse
from flashcard_engine.services import (
    access_service,
    flashcard_service,
    grading_service,
    progress_service,
    quiz_service,
    streak_service,
)
from flashcard_engine.services.review_service import ReviewEngine
from flashcard_engine.api.v1.endpoints.utils import commit_session, get_review_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flashcards", tags=["flashcards"])


@router.post("/collections/{collection_id}", response_model=FlashcardResponse, status_code=status.HTTP_201_CREATED)
async def create_flashcard(
    collection_id: int,
    request: CreateFlashcardRequest,
    session: Session = Depends(get_session)
):
    """Add a flashcard to a collection owned by the user."""
    response = flashcard_service.create_flashcard(session, collection_id, request)
    commit_session(session, f"creating flashcard in collection {collection_id}")
    return response


@router.get("/collections/{collection_id}", response_model=FlashcardListResponse)
async def list_flashcards(
    collection_id: int,
    user_id: int,
    status_filter: Optional[FlashcardStatus] = Query(None, alias="status"),
    due: bool = False,
    flashcard_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    session: Session = Depends(get_session)
):
    """
    List a collection's flashcards with the user's progress.

    Missing progress rows are created on the fly, so this endpoint commits.
    """
    response = flashcard_service.list_flashcards(
        session,
        collection_id,
        user_id,
        status=status_filter,
        due=due,
        flashcard_id=flashcard_id,
        page=page,
        per_page=per_page,
    )
    commit_session(session, f"listing flashcards of collection {collection_id}")
    return response


@router.post("/collections/{collection_id}/import", response_model=ImportResponse)
async def import_from_collection(
    collection_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Create a Both flashcard for every collection item that has none."""
    response = flashcard_service.import_from_collection(session, collection_id, user_id)
    commit_session(session, f"importing collection {collection_id}")
    return response


@router.get("/quiz/next", response_model=Optional[QuizQuestionResponse])
async def get_next_quiz(
    user_id: int,
    session: Session = Depends(get_session)
):
    """Earliest-due quiz question of the user, or null when nothing is due."""
    question = quiz_service.get_next_quiz(session, user_id)
    # The correct answer may have been cached while building the question
    commit_session(session, f"building next quiz for user {user_id}")
    return question


@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    user_id: int,
    days: Optional[int] = Query(None, ge=0, le=366),
    session: Session = Depends(get_session)
):
    """Daily points and streaks of a user."""
    return streak_service.get_streak(session, user_id, days=days)


@router.delete("/{flashcard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flashcard(
    flashcard_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Delete a flashcard with its history and progress."""
    flashcard_service.delete_flashcard(session, flashcard_id, user_id)
    commit_session(session, f"deleting flashcard {flashcard_id}")


@router.put("/{flashcard_id}/position", response_model=FlashcardResponse)
async def update_position(
    flashcard_id: int,
    request: UpdatePositionRequest,
    session: Session = Depends(get_session)
):
    """Move a flashcard within its collection."""
    flashcard_service.update_flashcard_position(session, flashcard_id, request.user_id, request.position)
    flashcard = access_service.get_flashcard(session, flashcard_id)
    progress = progress_service.get_all_progress(session, request.user_id, flashcard_id)
    commit_session(session, f"moving flashcard {flashcard_id}")
    return FlashcardResponse(
        flashcard_id=flashcard.id,
        collection_id=flashcard.collection_id,
        item_id=flashcard.item_id,
        position=flashcard.position,
        direction=flashcard.direction,
        created=False,
        progress=[ProgressResponse.model_validate(row) for row in progress],
    )


@router.put("/{flashcard_id}/direction", response_model=FlashcardResponse)
async def change_direction(
    flashcard_id: int,
    request: ChangeDirectionRequest,
    session: Session = Depends(get_session)
):
    """Change a flashcard's direction, archiving or restoring progress sides."""
    response = flashcard_service.change_direction(session, flashcard_id, request.user_id, request.direction)
    commit_session(session, f"changing direction of flashcard {flashcard_id}")
    return response


@router.post("/{flashcard_id}/snooze", response_model=list[ProgressResponse])
async def snooze_flashcard(
    flashcard_id: int,
    request: UserRequest,
    session: Session = Depends(get_session)
):
    """Postpone the flashcard's next review by a few hours."""
    access_service.get_flashcard(session, flashcard_id)
    rows = progress_service.snooze_flashcard(session, request.user_id, flashcard_id)
    response = [ProgressResponse.model_validate(row) for row in rows]
    commit_session(session, f"snoozing flashcard {flashcard_id}")
    return response


@router.post("/{flashcard_id}/reset", response_model=list[ProgressResponse])
async def reset_flashcard(
    flashcard_id: int,
    request: UserRequest,
    session: Session = Depends(get_session)
):
    """Reset the flashcard to New and wipe its review history."""
    access_service.get_flashcard(session, flashcard_id)
    rows = progress_service.reset_progress(session, request.user_id, flashcard_id)
    response = [ProgressResponse.model_validate(row) for row in rows]
    commit_session(session, f"resetting flashcard {flashcard_id}")
    return response


@router.post("/{flashcard_id}/review", response_model=ReviewResponse)
async def review_flashcard(
    flashcard_id: int,
    request: ReviewRequest,
    session: Session = Depends(get_session),
    engine: ReviewEngine = Depends(get_review_engine)
):
    """Apply a self-graded review (rating 1-4) to one side."""
    result = engine.review(session, request.user_id, flashcard_id, request.rating, request.card_side)
    response = ReviewResponse(
        progress=ProgressResponse.model_validate(result.progress),
        auto_progressed=[ProgressResponse.model_validate(row) for row in result.auto_progressed],
    )
    commit_session(session, f"reviewing flashcard {flashcard_id}")
    return response


@router.post("/{flashcard_id}/answer", response_model=AnswerResponse)
async def check_answer(
    flashcard_id: int,
    request: AnswerRequest,
    session: Session = Depends(get_session),
    engine: ReviewEngine = Depends(get_review_engine)
):
    """Grade a typed answer by exact match."""
    response = grading_service.check_direct_answer(
        session, engine, request.user_id, flashcard_id, request.card_side, request.answer
    )
    commit_session(session, f"checking answer for flashcard {flashcard_id}")
    return response


@router.post("/{flashcard_id}/fillin", response_model=AnswerResponse)
async def submit_fillin(
    flashcard_id: int,
    request: AnswerRequest,
    session: Session = Depends(get_session),
    engine: ReviewEngine = Depends(get_review_engine)
):
    """Grade a fill-in answer by similarity."""
    response = grading_service.submit_fillin_answer(
        session, engine, request.user_id, flashcard_id, request.card_side, request.answer
    )
    commit_session(session, f"grading fill-in for flashcard {flashcard_id}")
    return response


@router.post("/{flashcard_id}/quiz-options", response_model=QuizOptionResponse)
async def generate_quiz_options(
    flashcard_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Recompute the stored correct answer of a quiz flashcard."""
    option = quiz_service.generate_and_set_quiz_options(session, flashcard_id, user_id)
    response = QuizOptionResponse(
        flashcard_id=option.flashcard_id,
        correct_answer_text=option.correct_answer_text,
        created_at=option.created_at,
    )
    commit_session(session, f"generating quiz options for flashcard {flashcard_id}")
    return response


@router.get("/{flashcard_id}/quiz", response_model=QuizQuestionResponse)
async def get_quiz_question(
    flashcard_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Render a quiz flashcard as a four-option question."""
    flashcard = access_service.get_flashcard(session, flashcard_id)
    access_service.verify_study_access(session, flashcard, user_id)
    question = quiz_service.build_quiz_question(session, user_id, flashcard)
    commit_session(session, f"building quiz for flashcard {flashcard_id}")
    return question


@router.post("/{flashcard_id}/quiz", response_model=QuizSubmitResponse)
async def submit_quiz(
    flashcard_id: int,
    request: QuizSubmitRequest,
    session: Session = Depends(get_session),
    engine: ReviewEngine = Depends(get_review_engine)
):
    """Submit a quiz choice; every submission is logged and scheduled."""
    response = quiz_service.submit_quiz_answer(
        session,
        engine,
        request.user_id,
        flashcard_id,
        request.card_side,
        request.selected_option,
        request.presented_options,
    )
    commit_session(session, f"submitting quiz answer for flashcard {flashcard_id}")
    return response
