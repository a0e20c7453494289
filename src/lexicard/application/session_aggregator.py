"""
Study session aggregation.

A session is OPEN from start() until close(), then CLOSED for good. Results
are appended while open; totals are derived once at close.
"""

import logging
from datetime import datetime, timedelta

from lexicard.domain.errors import InvalidStateError, ValidationError
from lexicard.domain.models import SessionState, SessionSummary, StudySession, WordResult

from .id_service import generate_id
from .utils.dates import ensure_utc

logger = logging.getLogger(__name__)


class SessionAggregator:
    """
    Drives the OPEN -> CLOSED lifecycle of a study session.

    Does not touch word state; the caller applies the review to the word.
    """

    def start(
        self,
        user_id: str,
        book_id: str,
        start_time: datetime,
        session_id: str | None = None,
    ) -> StudySession:
        """Create an open session with no results."""
        return StudySession(
            id=session_id or generate_id("session"),
            user_id=user_id,
            book_id=book_id,
            start_time=start_time,
        )

    def record_result(
        self,
        session: StudySession,
        word_id: str,
        known: bool,
        time_spent: int,
        reviewed_at: datetime,
    ) -> WordResult:
        """
        Append one word outcome to an open session.

        Raises:
            InvalidStateError: The session is already closed.
            ValidationError: time_spent is negative.
        """
        self._require_open(session, "record a result in")
        if time_spent < 0:
            raise ValidationError(f"time_spent must be >= 0, got {time_spent}")

        result = WordResult(
            word_id=word_id,
            known=known,
            time_spent=time_spent,
            reviewed_at=reviewed_at,
        )
        session.word_results.append(result)
        return result

    def close(self, session: StudySession, end_time: datetime) -> SessionSummary:
        """
        Close the session and freeze its statistics.

        Raises:
            InvalidStateError: The session was closed before. The session is left untouched.
            ValidationError: end_time precedes start_time.
        """
        self._require_open(session, "close")

        elapsed = ensure_utc(end_time) - ensure_utc(session.start_time)
        if elapsed.total_seconds() < 0:
            raise ValidationError(
                f"end_time {end_time.isoformat()} is before start_time "
                f"{session.start_time.isoformat()}"
            )

        total = len(session.word_results)
        known = sum(1 for r in session.word_results if r.known)

        session.end_time = end_time
        session.duration = elapsed // timedelta(milliseconds=1)
        session.total_words = total
        session.known_words = known
        session.unknown_words = total - known

        logger.info(
            f"Closed session {session.id}: {total} words ({known} known) in {session.duration}ms"
        )
        return summarize(session)

    def _require_open(self, session: StudySession, action: str) -> None:
        if session.state is not SessionState.OPEN:
            raise InvalidStateError(f"Cannot {action} session {session.id}: already closed")


def summarize(session: StudySession) -> SessionSummary:
    """Snapshot the stored totals of a session."""
    return SessionSummary(
        session_id=session.id,
        duration=session.duration,
        total_words=session.total_words,
        known_words=session.known_words,
        unknown_words=session.unknown_words,
    )
