"""
Utility functions for endpoint operations.
"""
from fastapi import HTTPException, status
from sqlmodel import Session
import logging

from flashcard_engine.services.review_service import ReviewEngine

logger = logging.getLogger(__name__)

_review_engine = None


def get_review_engine() -> ReviewEngine:
    """Dependency returning the shared review engine (FSRS memory model, persisted retention cache)."""
    global _review_engine
    if _review_engine is None:
        _review_engine = ReviewEngine()
    return _review_engine


def commit_session(session: Session, action: str) -> None:
    """
    Commit the request's transaction, rolling back on failure.

    Args:
        session: Database session
        action: Short description used in logs and the error detail
    """
    try:
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Error while {action}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed while {action}"
        )
