"""
Study Service: Application layer orchestrator for review sessions.

Coordinates the session aggregator, the word review state and the
repository for one user's study sittings.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from lexicard.domain.constants import DEFAULT_SESSION_PAGE_SIZE
from lexicard.domain.errors import NotFoundError, ValidationError
from lexicard.domain.models import SessionSummary, StudySession, VocabularyBook, Word
from lexicard.domain.ports import VocabularyRepository

from .session_aggregator import SessionAggregator
from .word_state import apply_review_result

logger = logging.getLogger(__name__)


@dataclass
class SessionPage:
    """One page of a user's session history, newest first."""

    sessions: list[StudySession]
    total: int
    limit: int
    skip: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class SessionDetails:
    """A session with the book and words it references resolved."""

    session: StudySession
    book: VocabularyBook | None
    words: dict[str, Word]


class StudyService:
    """
    Application service for starting, recording and ending study sessions.

    Follows Dependency Inversion: depends on VocabularyRepository abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        repo: VocabularyRepository,
        aggregator: SessionAggregator | None = None,
    ):
        """
        Args:
            repo: The repository (port) for words, books and sessions.
            aggregator: Optional custom aggregator; uses default if not provided.
        """
        self._repo = repo
        self._aggregator = aggregator or SessionAggregator()

    async def start_session(self, user_id: str, book_id: str, now: datetime) -> StudySession:
        """
        Open a session against a book and mark the book as studied.

        Raises:
            NotFoundError: The book does not exist.
        """
        book = await self._repo.get_book(book_id)

        session = self._aggregator.start(user_id, book_id, now)
        await self._repo.save_session(session)

        book.last_studied = now
        await self._repo.save_book(book)

        logger.info(f"Started session {session.id} for {user_id} on book {book_id}")
        return session

    async def record_word_result(
        self,
        session_id: str,
        word_id: str,
        known: bool,
        time_spent: int,
        now: datetime,
    ) -> Word:
        """
        Record one flashcard outcome.

        The session append and the word update are stored in a single
        repository write, so a failure leaves neither applied.

        Raises:
            NotFoundError: Unknown session or word.
            InvalidStateError: The session is closed.
            ValidationError: Negative time_spent.
        """
        session = await self._repo.get_session(session_id)
        word = await self._repo.get_word(word_id)

        self._aggregator.record_result(session, word_id, known, time_spent, now)
        apply_review_result(word, known, now)

        await self._repo.save_review(word, session)
        logger.debug(
            f"Session {session_id}: {word.word!r} known={known} "
            f"familiarity={word.familiarity} next={word.next_review_at}"
        )
        return word

    async def end_session(self, session_id: str, now: datetime) -> SessionSummary:
        """
        Close a session and refresh its book's stats cache.

        Raises:
            NotFoundError: Unknown session.
            InvalidStateError: The session was already closed.
        """
        session = await self._repo.get_session(session_id)
        summary = self._aggregator.close(session, now)
        await self._repo.save_session(session)

        try:
            book = await self._repo.get_book(session.book_id)
        except NotFoundError:
            logger.warning(f"Book {session.book_id} of session {session_id} no longer exists")
        else:
            await self._repo.save_book(book)

        return summary

    async def user_sessions(
        self,
        user_id: str,
        limit: int = DEFAULT_SESSION_PAGE_SIZE,
        skip: int = 0,
    ) -> SessionPage:
        if limit <= 0 or skip < 0:
            raise ValidationError("limit must be positive and skip must not be negative")

        sessions = await self._repo.list_sessions(user_id, limit=limit, skip=skip)
        total = await self._repo.count_sessions(user_id)
        return SessionPage(sessions=sessions, total=total, limit=limit, skip=skip)

    async def session_details(self, session_id: str) -> SessionDetails:
        session = await self._repo.get_session(session_id)

        try:
            book = await self._repo.get_book(session.book_id)
        except NotFoundError:
            book = None

        words: dict[str, Word] = {}
        for result in session.word_results:
            if result.word_id in words:
                continue
            try:
                words[result.word_id] = await self._repo.get_word(result.word_id)
            except NotFoundError:
                logger.debug(f"Word {result.word_id} of session {session_id} was deleted")

        return SessionDetails(session=session, book=book, words=words)
