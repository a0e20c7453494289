"""
Ports (interfaces) for persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import StudySession, VocabularyBook, Word


class VocabularyRepository(ABC):
    """
    Port for loading and storing words, books and study sessions.

    Implementations:
        - MemoryRepository: Dict-backed store for tests and ephemeral runs.
        - SqliteRepository: Persistent store on a local SQLite file.

    Lookups by id raise NotFoundError when the id does not resolve.
    """

    # ---------- Words ----------

    @abstractmethod
    async def get_word(self, word_id: str) -> Word:
        pass

    @abstractmethod
    async def list_words(self, book_id: str) -> list[Word]:
        """Words of a book, in the book's order."""
        pass

    @abstractmethod
    async def list_user_words(self, user_id: str) -> list[Word]:
        """Every word contained in any of the user's books."""
        pass

    @abstractmethod
    async def save_word(self, word: Word) -> None:
        pass

    # ---------- Books ----------

    @abstractmethod
    async def get_book(self, book_id: str) -> VocabularyBook:
        pass

    @abstractmethod
    async def list_books(self, user_id: str) -> list[VocabularyBook]:
        """The user's books, most recently updated first."""
        pass

    @abstractmethod
    async def find_books_with_word(self, word_id: str) -> list[VocabularyBook]:
        pass

    @abstractmethod
    async def save_book(self, book: VocabularyBook) -> None:
        """
        Store a book, refreshing its stats cache from the stored words first.

        The passed object is updated in place with the recomputed counters.
        """
        pass

    @abstractmethod
    async def add_words(self, book_id: str, words: list[Word]) -> None:
        """
        Store new words and append them to a book in a single transaction.

        Either every word is stored and linked, or nothing is written.
        """
        pass

    @abstractmethod
    async def remove_word(self, book_id: str, word_id: str) -> None:
        """Unlink a word from a book and delete the word."""
        pass

    @abstractmethod
    async def delete_book(self, book_id: str, delete_words: bool = False) -> None:
        """Delete a book, and optionally its words, in a single transaction."""
        pass

    # ---------- User settings ----------

    @abstractmethod
    async def get_current_book_id(self, user_id: str) -> str | None:
        """The book a user last selected, or None if they never chose one."""
        pass

    @abstractmethod
    async def set_current_book_id(self, user_id: str, book_id: str) -> None:
        pass

    # ---------- Sessions ----------

    @abstractmethod
    async def get_session(self, session_id: str) -> StudySession:
        pass

    @abstractmethod
    async def list_sessions(
        self,
        user_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[StudySession]:
        """
        Sessions of a user, newest start_time first.

        Args:
            user_id: Owner of the sessions.
            since: Inclusive lower bound on start_time.
            until: Inclusive upper bound on start_time.
            limit: Maximum number of sessions to return.
            skip: Number of sessions to skip before collecting.
        """
        pass

    @abstractmethod
    async def count_sessions(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def save_session(self, session: StudySession) -> None:
        pass

    @abstractmethod
    async def save_review(self, word: Word, session: StudySession) -> None:
        """
        Store an updated word and the session it was reviewed in atomically.

        Both writes succeed or neither does.
        """
        pass

    # ---------- Lifecycle ----------

    def close(self) -> None:
        """Release the underlying storage handle."""
