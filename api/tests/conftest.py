"""
Shared fixtures: in-memory SQLite session, fake collaborators and small factories.
"""
import os

# Settings require a database URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from typing import Optional

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

import flashcard_engine.models  # noqa: F401
from flashcard_engine.models.collection import Collection
from flashcard_engine.models.collection_item import CollectionItem
from flashcard_engine.models.definition import Definition
from flashcard_engine.models.enums import CardSide, FlashcardDirection, FlashcardStatus
from flashcard_engine.models.flashcard import Flashcard
from flashcard_engine.models.flashcard_review_history import FlashcardReviewHistory
from flashcard_engine.services.memory_model import ItemState, MemoryModel, MemoryState, NextStates
from flashcard_engine.services.progress_service import initialize_sides
from flashcard_engine.services.retention_service import RetentionCache, RetentionOptimizer
from flashcard_engine.services.review_service import ReviewEngine

NOW = datetime(2026, 3, 10, 12, 0, 0)
OWNER_ID = 1
OTHER_USER_ID = 2


class FakeMemoryModel(MemoryModel):
    """Deterministic scheduler: intervals 1/2/4/8 days, stability scaled by rating."""

    INTERVALS = {1: 1, 2: 2, 3: 4, 4: 8}

    def __init__(self):
        self.calls = []

    def next_states(self, current, desired_retention, elapsed_days):
        self.calls.append((current, desired_retention, elapsed_days))
        base = current.stability if current is not None else 1.0
        return NextStates(*[
            ItemState(memory=MemoryState(stability=base * rating, difficulty=5.0), interval=self.INTERVALS[rating])
            for rating in (1, 2, 3, 4)
        ])


class FailingOptimizer(RetentionOptimizer):
    def __init__(self):
        self.calls = 0

    def optimal_retention(self, revlog, progress=None):
        self.calls += 1
        raise RuntimeError("optimizer unavailable")


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def memory_model():
    return FakeMemoryModel()


@pytest.fixture
def review_engine(memory_model):
    return ReviewEngine(memory_model=memory_model, retention_cache=RetentionCache())


@pytest.fixture
def now():
    return NOW


def make_collection(session: Session, user_id: int = OWNER_ID, is_public: bool = False, name: str = "Deck") -> Collection:
    collection = Collection(user_id=user_id, name=name, is_public=is_public)
    session.add(collection)
    session.flush()
    return collection


def make_card(
    session: Session,
    collection: Collection,
    word: Optional[str] = None,
    definition: Optional[str] = None,
    front: Optional[str] = None,
    back: Optional[str] = None,
    direction: FlashcardDirection = FlashcardDirection.BOTH,
    auto_progress: bool = True,
    user_id: Optional[int] = OWNER_ID,
    now: datetime = NOW
) -> Flashcard:
    """Create an item (dictionary-linked when word is given) with one flashcard and initialized progress."""
    definition_id = None
    if word is not None:
        entry = Definition(word=word, definition=definition or f"meaning of {word}")
        session.add(entry)
        session.flush()
        definition_id = entry.id

    position = len(collection_cards(session, collection))
    item = CollectionItem(
        collection_id=collection.id,
        definition_id=definition_id,
        free_content_front=front,
        free_content_back=back,
        position=position,
        auto_progress=auto_progress,
    )
    session.add(item)
    session.flush()

    flashcard = Flashcard(collection_id=collection.id, item_id=item.id, position=position, direction=direction)
    session.add(flashcard)
    session.flush()

    if user_id is not None:
        initialize_sides(session, user_id, flashcard, now=now)
    return flashcard


def collection_cards(session: Session, collection: Collection):
    return session.exec(select(Flashcard).where(Flashcard.collection_id == collection.id)).all()


def add_history(
    session: Session,
    flashcard: Flashcard,
    rating: int,
    review_time: datetime,
    user_id: int = OWNER_ID,
    previous_status: FlashcardStatus = FlashcardStatus.REVIEW
) -> FlashcardReviewHistory:
    event = FlashcardReviewHistory(
        user_id=user_id,
        flashcard_id=flashcard.id,
        card_side=CardSide.DIRECT,
        rating=rating,
        elapsed_days=1,
        scheduled_days=1,
        stability=1.0,
        difficulty=5.0,
        previous_status=previous_status,
        review_time=review_time,
    )
    session.add(event)
    session.flush()
    return event


def days_ago(days: int, base: datetime = NOW) -> datetime:
    return base - timedelta(days=days)
