"""
Custom exceptions for the flashcard engine.
"""


class FlashcardEngineException(Exception):
    """Base exception for all flashcard engine exceptions."""
    pass


class InvalidArgumentError(FlashcardEngineException):
    """Raised when a request carries a malformed value (rating, card side, content)."""
    pass


class AccessDeniedError(FlashcardEngineException):
    """Raised when ownership, visibility or level-lock checks fail."""
    pass


class NotFoundError(FlashcardEngineException):
    """Raised when a requested resource is not found."""
    pass


class InvalidStateError(FlashcardEngineException):
    """Raised when an operation is not applicable to the card in its current form."""
    pass


class ConflictError(FlashcardEngineException):
    """Raised when there's a conflict (e.g., deleting a level other levels depend on)."""
    pass
