"""
Memory Repository: Infrastructure adapter backed by plain dicts.

Stores deep copies so callers never share state with the store. Multi-write
operations run inside a snapshot that is restored if any step fails.
"""

import copy
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from lexicard.application.utils.dates import ensure_utc
from lexicard.domain.errors import NotFoundError
from lexicard.domain.models import StudySession, VocabularyBook, Word
from lexicard.domain.ports import VocabularyRepository

logger = logging.getLogger(__name__)


class MemoryRepository(VocabularyRepository):
    """Dict-backed repository for tests and throwaway runs."""

    def __init__(self):
        self._words: dict[str, Word] = {}
        self._books: dict[str, VocabularyBook] = {}
        self._sessions: dict[str, StudySession] = {}
        self._current_books: dict[str, str] = {}

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        snapshot = (
            dict(self._words),
            dict(self._books),
            dict(self._sessions),
            dict(self._current_books),
        )
        try:
            yield
        except Exception:
            self._words, self._books, self._sessions, self._current_books = snapshot
            logger.warning("Rolled back in-memory transaction")
            raise

    # ---------- Words ----------

    async def get_word(self, word_id: str) -> Word:
        if word_id not in self._words:
            raise NotFoundError("word", word_id)
        return copy.deepcopy(self._words[word_id])

    async def list_words(self, book_id: str) -> list[Word]:
        book = self._require_book(book_id)
        return [copy.deepcopy(self._words[wid]) for wid in book.word_ids if wid in self._words]

    async def list_user_words(self, user_id: str) -> list[Word]:
        seen: dict[str, Word] = {}
        for book in self._books.values():
            if book.user_id != user_id:
                continue
            for wid in book.word_ids:
                if wid in self._words and wid not in seen:
                    seen[wid] = copy.deepcopy(self._words[wid])
        return list(seen.values())

    async def save_word(self, word: Word) -> None:
        self._words[word.id] = copy.deepcopy(word)

    # ---------- Books ----------

    async def get_book(self, book_id: str) -> VocabularyBook:
        return copy.deepcopy(self._require_book(book_id))

    async def list_books(self, user_id: str) -> list[VocabularyBook]:
        books = [b for b in self._books.values() if b.user_id == user_id]
        books.sort(key=lambda b: _sort_time(b.updated_at), reverse=True)
        return copy.deepcopy(books)

    async def find_books_with_word(self, word_id: str) -> list[VocabularyBook]:
        return [copy.deepcopy(b) for b in self._books.values() if word_id in b.word_ids]

    async def save_book(self, book: VocabularyBook) -> None:
        self._store_book(book)

    async def add_words(self, book_id: str, words: list[Word]) -> None:
        with self._transaction():
            book = copy.deepcopy(self._require_book(book_id))
            for word in words:
                self._words[word.id] = copy.deepcopy(word)
                book.word_ids.append(word.id)
            self._store_book(book)

    async def remove_word(self, book_id: str, word_id: str) -> None:
        with self._transaction():
            if book_id in self._books:
                book = copy.deepcopy(self._books[book_id])
                book.word_ids = [wid for wid in book.word_ids if wid != word_id]
                self._store_book(book)
            self._words.pop(word_id, None)

    async def delete_book(self, book_id: str, delete_words: bool = False) -> None:
        with self._transaction():
            book = self._require_book(book_id)
            if delete_words:
                for wid in book.word_ids:
                    self._words.pop(wid, None)
            self._drop_book(book_id)

    def _require_book(self, book_id: str) -> VocabularyBook:
        if book_id not in self._books:
            raise NotFoundError("book", book_id)
        return self._books[book_id]

    def _store_book(self, book: VocabularyBook) -> None:
        book.refresh_stats([self._words[wid] for wid in book.word_ids if wid in self._words])
        self._books[book.id] = copy.deepcopy(book)

    def _drop_book(self, book_id: str) -> None:
        del self._books[book_id]
        self._current_books = {
            user: bid for user, bid in self._current_books.items() if bid != book_id
        }

    # ---------- User settings ----------

    async def get_current_book_id(self, user_id: str) -> str | None:
        return self._current_books.get(user_id)

    async def set_current_book_id(self, user_id: str, book_id: str) -> None:
        self._current_books[user_id] = book_id

    # ---------- Sessions ----------

    async def get_session(self, session_id: str) -> StudySession:
        if session_id not in self._sessions:
            raise NotFoundError("session", session_id)
        return copy.deepcopy(self._sessions[session_id])

    async def list_sessions(
        self,
        user_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[StudySession]:
        sessions = []
        for s in self._sessions.values():
            if s.user_id != user_id:
                continue
            start = ensure_utc(s.start_time)
            if since is not None and start < ensure_utc(since):
                continue
            if until is not None and start > ensure_utc(until):
                continue
            sessions.append(s)

        sessions.sort(key=lambda s: ensure_utc(s.start_time), reverse=True)
        end = None if limit is None else skip + limit
        return copy.deepcopy(sessions[skip:end])

    async def count_sessions(self, user_id: str) -> int:
        return sum(1 for s in self._sessions.values() if s.user_id == user_id)

    async def save_session(self, session: StudySession) -> None:
        self._store_session(session)

    async def save_review(self, word: Word, session: StudySession) -> None:
        with self._transaction():
            self._words[word.id] = copy.deepcopy(word)
            self._store_session(session)

    def _store_session(self, session: StudySession) -> None:
        self._sessions[session.id] = copy.deepcopy(session)


def _sort_time(value: datetime | None) -> datetime:
    return ensure_utc(value) if value else datetime.min.replace(tzinfo=timezone.utc)
