"""
SQLite Repository: Infrastructure adapter for a local SQLite database.

Implements VocabularyRepository on a single connection opened for the
lifetime of the process. Multi-row writes run inside one transaction.

Tables:
    words       one row per word; status_history and examples are JSON
    books       one row per book with its cached counters; tags are JSON
    book_words  ordered membership (book_id, word_id, position)
    sessions    one row per session; word_results is JSON
    user_settings  per-user preferences such as the current book
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from lexicard.application.utils.dates import ensure_utc
from lexicard.domain.errors import NotFoundError
from lexicard.domain.models import (
    ReviewStatus,
    StatusEntry,
    StudySession,
    VocabularyBook,
    Word,
    WordResult,
)
from lexicard.domain.ports import VocabularyRepository

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS words (
    id TEXT PRIMARY KEY,
    word TEXT NOT NULL,
    definition TEXT NOT NULL,
    examples TEXT NOT NULL DEFAULT '[]',
    pronunciation TEXT,
    familiarity INTEGER NOT NULL DEFAULT 0 CHECK (familiarity BETWEEN 0 AND 5),
    is_known INTEGER NOT NULL DEFAULT 0,
    review_count INTEGER NOT NULL DEFAULT 0,
    incorrect_count INTEGER NOT NULL DEFAULT 0,
    last_reviewed_at TEXT,
    next_review_at TEXT,
    status_history TEXT NOT NULL DEFAULT '[]',
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS books (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    user_id TEXT NOT NULL,
    description TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    total_words INTEGER NOT NULL DEFAULT 0,
    known_words INTEGER NOT NULL DEFAULT 0,
    unknown_words INTEGER NOT NULL DEFAULT 0,
    last_studied TEXT,
    created_at TEXT,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_books_user ON books(user_id);

CREATE TABLE IF NOT EXISTS book_words (
    book_id TEXT NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    word_id TEXT NOT NULL REFERENCES words(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    PRIMARY KEY (book_id, word_id)
);
CREATE INDEX IF NOT EXISTS idx_book_words_word ON book_words(word_id);

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    book_id TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    duration INTEGER NOT NULL DEFAULT 0,
    total_words INTEGER NOT NULL DEFAULT 0,
    known_words INTEGER NOT NULL DEFAULT 0,
    unknown_words INTEGER NOT NULL DEFAULT 0,
    word_results TEXT NOT NULL DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_sessions_user_start ON sessions(user_id, start_time);

CREATE TABLE IF NOT EXISTS user_settings (
    user_id TEXT PRIMARY KEY,
    current_book_id TEXT REFERENCES books(id) ON DELETE SET NULL
);
"""


class SqliteRepository(VocabularyRepository):
    """
    Stores words, books and sessions in SQLite.

    Timestamps are stored as UTC ISO-8601 strings so they sort lexically.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.conn.executescript(SCHEMA)
        logger.debug(f"Opened SQLite database at {self.db_path}")

    def close(self) -> None:
        self.conn.close()
        logger.debug(f"Closed SQLite database at {self.db_path}")

    def __enter__(self) -> "SqliteRepository":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ---------- Words ----------

    async def get_word(self, word_id: str) -> Word:
        row = self.conn.execute("SELECT * FROM words WHERE id = ?", (word_id,)).fetchone()
        if row is None:
            raise NotFoundError("word", word_id)
        return _row_to_word(row)

    async def list_words(self, book_id: str) -> list[Word]:
        self._require_book(book_id)
        return self._book_words(book_id)

    async def list_user_words(self, user_id: str) -> list[Word]:
        rows = self.conn.execute(
            "SELECT DISTINCT w.* FROM words w "
            "JOIN book_words bw ON bw.word_id = w.id "
            "JOIN books b ON b.id = bw.book_id "
            "WHERE b.user_id = ?",
            (user_id,),
        ).fetchall()
        return [_row_to_word(r) for r in rows]

    async def save_word(self, word: Word) -> None:
        with self.conn:
            self._upsert_word(word)

    # ---------- Books ----------

    async def get_book(self, book_id: str) -> VocabularyBook:
        return self._row_to_book(self._require_book(book_id))

    async def list_books(self, user_id: str) -> list[VocabularyBook]:
        rows = self.conn.execute(
            "SELECT * FROM books WHERE user_id = ? ORDER BY updated_at DESC", (user_id,)
        ).fetchall()
        return [self._row_to_book(r) for r in rows]

    async def find_books_with_word(self, word_id: str) -> list[VocabularyBook]:
        rows = self.conn.execute(
            "SELECT b.* FROM books b JOIN book_words bw ON bw.book_id = b.id "
            "WHERE bw.word_id = ?",
            (word_id,),
        ).fetchall()
        return [self._row_to_book(r) for r in rows]

    async def save_book(self, book: VocabularyBook) -> None:
        with self.conn:
            self._store_book(book)

    async def add_words(self, book_id: str, words: list[Word]) -> None:
        with self.conn:
            book = self._row_to_book(self._require_book(book_id))
            for word in words:
                self._upsert_word(word)
                book.word_ids.append(word.id)
            self._store_book(book)
        logger.debug(f"Added {len(words)} words to book {book_id}")

    async def remove_word(self, book_id: str, word_id: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM words WHERE id = ?", (word_id,))
            row = self.conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            if row is not None:
                self._store_book(self._row_to_book(row))

    async def delete_book(self, book_id: str, delete_words: bool = False) -> None:
        with self.conn:
            self._require_book(book_id)
            if delete_words:
                self.conn.execute(
                    "DELETE FROM words WHERE id IN "
                    "(SELECT word_id FROM book_words WHERE book_id = ?)",
                    (book_id,),
                )
            self._drop_book(book_id)

    # ---------- User settings ----------

    async def get_current_book_id(self, user_id: str) -> str | None:
        row = self.conn.execute(
            "SELECT current_book_id FROM user_settings WHERE user_id = ?", (user_id,)
        ).fetchone()
        return row["current_book_id"] if row else None

    async def set_current_book_id(self, user_id: str, book_id: str) -> None:
        with self.conn:
            self.conn.execute(
                "INSERT INTO user_settings (user_id, current_book_id) VALUES (?, ?) "
                "ON CONFLICT(user_id) DO UPDATE SET current_book_id = excluded.current_book_id",
                (user_id, book_id),
            )

    # ---------- Sessions ----------

    async def get_session(self, session_id: str) -> StudySession:
        row = self.conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            raise NotFoundError("session", session_id)
        return _row_to_session(row)

    async def list_sessions(
        self,
        user_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[StudySession]:
        query = "SELECT * FROM sessions WHERE user_id = ?"
        params: list[Any] = [user_id]
        if since is not None:
            query += " AND start_time >= ?"
            params.append(_dt_out(since))
        if until is not None:
            query += " AND start_time <= ?"
            params.append(_dt_out(until))
        query += " ORDER BY start_time DESC LIMIT ? OFFSET ?"
        params.extend([-1 if limit is None else limit, skip])

        rows = self.conn.execute(query, params).fetchall()
        return [_row_to_session(r) for r in rows]

    async def count_sessions(self, user_id: str) -> int:
        return self.conn.execute(
            "SELECT COUNT(*) FROM sessions WHERE user_id = ?", (user_id,)
        ).fetchone()[0]

    async def save_session(self, session: StudySession) -> None:
        with self.conn:
            self._store_session(session)

    async def save_review(self, word: Word, session: StudySession) -> None:
        with self.conn:
            self._upsert_word(word)
            self._store_session(session)

    # ---------- Internals ----------

    def _require_book(self, book_id: str) -> sqlite3.Row:
        row = self.conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        if row is None:
            raise NotFoundError("book", book_id)
        return row

    def _drop_book(self, book_id: str) -> None:
        self.conn.execute("DELETE FROM books WHERE id = ?", (book_id,))

    def _book_words(self, book_id: str) -> list[Word]:
        rows = self.conn.execute(
            "SELECT w.* FROM words w JOIN book_words bw ON bw.word_id = w.id "
            "WHERE bw.book_id = ? ORDER BY bw.position",
            (book_id,),
        ).fetchall()
        return [_row_to_word(r) for r in rows]

    def _word_exists(self, word_id: str) -> bool:
        row = self.conn.execute("SELECT 1 FROM words WHERE id = ?", (word_id,)).fetchone()
        return row is not None

    def _row_to_book(self, row: sqlite3.Row) -> VocabularyBook:
        word_ids = [
            r["word_id"]
            for r in self.conn.execute(
                "SELECT word_id FROM book_words WHERE book_id = ? ORDER BY position",
                (row["id"],),
            )
        ]
        return VocabularyBook(
            id=row["id"],
            name=row["name"],
            user_id=row["user_id"],
            description=row["description"],
            word_ids=word_ids,
            tags=json.loads(row["tags"]),
            total_words=row["total_words"],
            known_words=row["known_words"],
            unknown_words=row["unknown_words"],
            last_studied=_dt_in(row["last_studied"]),
            created_at=_dt_in(row["created_at"]),
            updated_at=_dt_in(row["updated_at"]),
        )

    def _store_book(self, book: VocabularyBook) -> None:
        """Write a book and its membership, then refresh its counters.

        The caller holds the transaction.
        """
        self.conn.execute(
            "INSERT INTO books (id, name, user_id, description, tags, last_studied, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name = excluded.name, "
            "description = excluded.description, tags = excluded.tags, "
            "last_studied = excluded.last_studied, updated_at = excluded.updated_at",
            (
                book.id,
                book.name,
                book.user_id,
                book.description,
                json.dumps(book.tags),
                _dt_out(book.last_studied),
                _dt_out(book.created_at),
                _dt_out(book.updated_at),
            ),
        )

        self.conn.execute("DELETE FROM book_words WHERE book_id = ?", (book.id,))
        # Drop duplicates and ids of deleted words
        book.word_ids = [wid for wid in dict.fromkeys(book.word_ids) if self._word_exists(wid)]
        self.conn.executemany(
            "INSERT INTO book_words (book_id, word_id, position) VALUES (?, ?, ?)",
            [(book.id, wid, pos) for pos, wid in enumerate(book.word_ids)],
        )

        book.refresh_stats(self._book_words(book.id))
        self.conn.execute(
            "UPDATE books SET total_words = ?, known_words = ?, unknown_words = ? WHERE id = ?",
            (book.total_words, book.known_words, book.unknown_words, book.id),
        )

    def _upsert_word(self, word: Word) -> None:
        self.conn.execute(
            "INSERT INTO words (id, word, definition, examples, pronunciation, "
            "familiarity, is_known, review_count, incorrect_count, last_reviewed_at, "
            "next_review_at, status_history, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET word = excluded.word, "
            "definition = excluded.definition, examples = excluded.examples, "
            "pronunciation = excluded.pronunciation, familiarity = excluded.familiarity, "
            "is_known = excluded.is_known, review_count = excluded.review_count, "
            "incorrect_count = excluded.incorrect_count, "
            "last_reviewed_at = excluded.last_reviewed_at, "
            "next_review_at = excluded.next_review_at, "
            "status_history = excluded.status_history, updated_at = excluded.updated_at",
            (
                word.id,
                word.word,
                word.definition,
                json.dumps(word.examples),
                word.pronunciation,
                word.familiarity,
                int(word.is_known),
                word.review_count,
                word.incorrect_count,
                _dt_out(word.last_reviewed_at),
                _dt_out(word.next_review_at),
                json.dumps(
                    [
                        {"status": e.status.value, "date": _dt_out(e.date)}
                        for e in word.status_history
                    ]
                ),
                _dt_out(word.created_at),
                _dt_out(word.updated_at),
            ),
        )

    def _store_session(self, session: StudySession) -> None:
        self.conn.execute(
            "INSERT INTO sessions (id, user_id, book_id, start_time, end_time, "
            "duration, total_words, known_words, unknown_words, word_results) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET end_time = excluded.end_time, "
            "duration = excluded.duration, total_words = excluded.total_words, "
            "known_words = excluded.known_words, unknown_words = excluded.unknown_words, "
            "word_results = excluded.word_results",
            (
                session.id,
                session.user_id,
                session.book_id,
                _dt_out(session.start_time),
                _dt_out(session.end_time),
                session.duration,
                session.total_words,
                session.known_words,
                session.unknown_words,
                json.dumps(
                    [
                        {
                            "word_id": r.word_id,
                            "known": r.known,
                            "time_spent": r.time_spent,
                            "reviewed_at": _dt_out(r.reviewed_at),
                        }
                        for r in session.word_results
                    ]
                ),
            ),
        )


def _dt_out(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat(timespec="microseconds") if value is not None else None


def _dt_in(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_word(row: sqlite3.Row) -> Word:
    return Word(
        id=row["id"],
        word=row["word"],
        definition=row["definition"],
        examples=json.loads(row["examples"]),
        pronunciation=row["pronunciation"],
        familiarity=row["familiarity"],
        is_known=bool(row["is_known"]),
        review_count=row["review_count"],
        incorrect_count=row["incorrect_count"],
        last_reviewed_at=_dt_in(row["last_reviewed_at"]),
        next_review_at=_dt_in(row["next_review_at"]),
        status_history=[
            StatusEntry(status=ReviewStatus(e["status"]), date=_dt_in(e["date"]))
            for e in json.loads(row["status_history"])
        ],
        created_at=_dt_in(row["created_at"]),
        updated_at=_dt_in(row["updated_at"]),
    )


def _row_to_session(row: sqlite3.Row) -> StudySession:
    return StudySession(
        id=row["id"],
        user_id=row["user_id"],
        book_id=row["book_id"],
        start_time=_dt_in(row["start_time"]),
        end_time=_dt_in(row["end_time"]),
        duration=row["duration"],
        total_words=row["total_words"],
        known_words=row["known_words"],
        unknown_words=row["unknown_words"],
        word_results=[
            WordResult(
                word_id=r["word_id"],
                known=r["known"],
                time_spent=r["time_spent"],
                reviewed_at=_dt_in(r["reviewed_at"]),
            )
            for r in json.loads(row["word_results"])
        ],
    )
