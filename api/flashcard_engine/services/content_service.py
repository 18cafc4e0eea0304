"""
Lexical lookup of flashcard content.

Resolves a flashcard to the text shown and expected on each side, either
from its linked dictionary definition or from the item's free content.
"""
from dataclasses import dataclass
from typing import Optional
from sqlmodel import Session

from flashcard_engine.core.exceptions import NotFoundError
from flashcard_engine.models.collection_item import CollectionItem
from flashcard_engine.models.definition import Definition
from flashcard_engine.models.enums import CardSide
from flashcard_engine.models.flashcard import Flashcard


@dataclass
class CardContent:
    item_id: int
    definition_id: Optional[int] = None
    word: Optional[str] = None
    definition: Optional[str] = None
    free_content_front: Optional[str] = None
    free_content_back: Optional[str] = None
    notes: Optional[str] = None
    auto_progress: bool = True

    @property
    def is_free_content(self) -> bool:
        return self.definition_id is None

    def expected_answer(self, side: CardSide) -> Optional[str]:
        """
        Answer the learner must produce on a side.

        direct: the definition (or free back side); reverse: the word (or free front side).
        """
        if side == CardSide.DIRECT:
            return self.definition if self.definition is not None else self.free_content_back
        return self.word if self.word is not None else self.free_content_front

    def question(self, side: CardSide) -> Optional[str]:
        """Prompt shown on a side, the opposite field of the expected answer."""
        if side == CardSide.DIRECT:
            return self.word if self.word is not None else self.free_content_front
        return self.definition if self.definition is not None else self.free_content_back


def resolve_card_content(session: Session, flashcard: Flashcard) -> CardContent:
    """
    Resolve the content behind a flashcard.

    Args:
        session: Database session
        flashcard: Flashcard to resolve

    Returns:
        CardContent with dictionary text when linked, free content otherwise

    Raises:
        NotFoundError: If the collection item is missing
    """
    item = session.get(CollectionItem, flashcard.item_id)
    if not item:
        raise NotFoundError(f"Collection item {flashcard.item_id} for flashcard {flashcard.id} not found")

    content = CardContent(
        item_id=item.id,
        free_content_front=item.free_content_front,
        free_content_back=item.free_content_back,
        notes=item.notes,
        auto_progress=item.auto_progress,
    )

    if item.definition_id is not None:
        definition = session.get(Definition, item.definition_id)
        if definition:
            content.definition_id = definition.id
            content.word = definition.word
            content.definition = definition.definition

    return content
