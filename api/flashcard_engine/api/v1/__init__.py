"""
API v1 router aggregation.
"""
from fastapi import APIRouter
from flashcard_engine.api.v1.endpoints import flashcards, levels

api_router = APIRouter()

# Each router already defines its own prefix
api_router.include_router(flashcards.router)
api_router.include_router(levels.router)
