"""
Level endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import List
import logging

from flashcard_engine.core.database import get_session
from flashcard_engine.schemas.level import (
    AddCardsToLevelRequest,
    CreateLevelRequest,
    LevelCardsResponse,
    LevelResponse,
    UpdateLevelRequest,
)
from flashcard_engine.services import level_service
from flashcard_engine.api.v1.endpoints.utils import commit_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/levels", tags=["levels"])


@router.post("/collections/{collection_id}", response_model=LevelResponse, status_code=status.HTTP_201_CREATED)
async def create_level(
    collection_id: int,
    user_id: int,
    request: CreateLevelRequest,
    session: Session = Depends(get_session)
):
    """Create a level in a collection owned by the user."""
    response = level_service.create_level(session, collection_id, user_id, request)
    commit_session(session, f"creating level in collection {collection_id}")
    return response


@router.get("/collections/{collection_id}", response_model=List[LevelResponse])
async def get_collection_levels(
    collection_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """All levels of a collection with the user's progress."""
    return level_service.get_collection_levels(session, collection_id, user_id)


@router.get("/{level_id}", response_model=LevelResponse)
async def get_level(
    level_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Level details for the user."""
    return level_service.get_level_details(session, level_id, user_id)


@router.patch("/{level_id}", response_model=LevelResponse)
async def update_level(
    level_id: int,
    user_id: int,
    request: UpdateLevelRequest,
    session: Session = Depends(get_session)
):
    """Partially update a level."""
    response = level_service.update_level(session, level_id, user_id, request)
    commit_session(session, f"updating level {level_id}")
    return response


@router.delete("/{level_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_level(
    level_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Delete a level that no other level depends on."""
    level_service.delete_level(session, level_id, user_id)
    commit_session(session, f"deleting level {level_id}")


@router.post("/{level_id}/cards", response_model=LevelResponse)
async def add_cards(
    level_id: int,
    user_id: int,
    request: AddCardsToLevelRequest,
    session: Session = Depends(get_session)
):
    """Assign flashcards to a level."""
    response = level_service.add_cards_to_level(
        session, level_id, user_id, request.flashcard_ids, request.start_position
    )
    commit_session(session, f"adding cards to level {level_id}")
    return response


@router.get("/{level_id}/cards", response_model=LevelCardsResponse)
async def get_level_cards(
    level_id: int,
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    session: Session = Depends(get_session)
):
    """Cards of an unlocked level with the user's attempt statistics."""
    return level_service.get_level_cards(session, level_id, user_id, page=page, per_page=per_page)


@router.delete("/{level_id}/cards/{flashcard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_card(
    level_id: int,
    flashcard_id: int,
    user_id: int,
    session: Session = Depends(get_session)
):
    """Remove a card from a level."""
    level_service.remove_card_from_level(session, level_id, flashcard_id, user_id)
    commit_session(session, f"removing flashcard {flashcard_id} from level {level_id}")
