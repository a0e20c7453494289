"""
Domain models for vocabulary review.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ReviewStatus(str, Enum):
    """Outcome of a single review event, persisted as its string value."""

    KNOWN = "known"
    UNKNOWN = "unknown"

    @classmethod
    def from_known(cls, known: bool) -> "ReviewStatus":
        return cls.KNOWN if known else cls.UNKNOWN


@dataclass(frozen=True)
class StatusEntry:
    """
    One entry of a word's review log.

    Attributes:
        status: Whether the word was recalled.
        date: When the review happened.
    """

    status: ReviewStatus
    date: datetime


@dataclass
class Word:
    """
    A vocabulary item under review.

    status_history is append-only and always has review_count entries.
    """

    id: str
    word: str
    definition: str
    examples: list[str] = field(default_factory=list)
    pronunciation: str | None = None

    # Review state
    familiarity: int = 0  # 0 = new or forgotten, 5 = mastered
    is_known: bool = False  # Latest review outcome
    review_count: int = 0
    incorrect_count: int = 0
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    status_history: list[StatusEntry] = field(default_factory=list)

    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class WordDraft:
    """A word that has been parsed or submitted but not stored yet."""

    word: str
    definition: str
    examples: tuple[str, ...] = ()
    pronunciation: str | None = None


@dataclass
class VocabularyBook:
    """
    A named collection of words owned by one user.

    total_words, known_words and unknown_words are a cache over the current
    word set, refreshed by refresh_stats() whenever the book is saved.
    """

    id: str
    name: str
    user_id: str
    description: str | None = None
    word_ids: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    total_words: int = 0
    known_words: int = 0
    unknown_words: int = 0

    last_studied: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def refresh_stats(self, words: list[Word]) -> None:
        """Recompute the cached counters from the book's words."""
        self.total_words = len(words)
        self.known_words = sum(1 for w in words if w.is_known)
        self.unknown_words = self.total_words - self.known_words


class SessionState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class WordResult:
    """
    Outcome of reviewing one word inside a study session.

    Attributes:
        word_id: The reviewed word.
        known: Whether the user recalled it.
        time_spent: Milliseconds spent on the card.
        reviewed_at: When the result was recorded.
    """

    word_id: str
    known: bool
    time_spent: int
    reviewed_at: datetime


@dataclass
class StudySession:
    """
    One bounded review sitting for a (user, book) pair.

    The totals are only meaningful once the session is closed.
    """

    id: str
    user_id: str
    book_id: str
    start_time: datetime
    end_time: datetime | None = None
    duration: int = 0  # Milliseconds, set at close

    total_words: int = 0
    known_words: int = 0
    unknown_words: int = 0

    word_results: list[WordResult] = field(default_factory=list)

    @property
    def state(self) -> SessionState:
        return SessionState.CLOSED if self.end_time is not None else SessionState.OPEN


@dataclass(frozen=True)
class SessionSummary:
    """Frozen statistics of a closed session."""

    session_id: str
    duration: int
    total_words: int
    known_words: int
    unknown_words: int
