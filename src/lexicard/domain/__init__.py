# Domain Package
from .errors import InvalidStateError, LexicardError, NotFoundError, ValidationError
from .models import (
    ReviewStatus,
    SessionState,
    SessionSummary,
    StatusEntry,
    StudySession,
    VocabularyBook,
    Word,
    WordDraft,
    WordResult,
)
from .ports import VocabularyRepository

__all__ = [
    "LexicardError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    "ReviewStatus",
    "SessionState",
    "SessionSummary",
    "StatusEntry",
    "StudySession",
    "VocabularyBook",
    "Word",
    "WordDraft",
    "WordResult",
    "VocabularyRepository",
]
