from datetime import datetime, timezone

import pytest

from lexicard.domain.models import ReviewStatus, StatusEntry, StudySession, Word
from lexicard.infrastructure.adapters.memory_repository import MemoryRepository


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return utc(2024, 3, 15, 12, 0)


@pytest.fixture
def memory_repo():
    repo = MemoryRepository()
    yield repo
    repo.close()


@pytest.fixture
def make_word():
    def _make(word_id="w1", known=False, **kwargs):
        kwargs.setdefault("word", word_id)
        kwargs.setdefault("definition", f"definition of {word_id}")
        return Word(id=word_id, is_known=known, **kwargs)

    return _make


@pytest.fixture
def make_session():
    def _make(session_id, start, total=0, known=0, duration=0, user_id="u1", book_id="b1"):
        return StudySession(
            id=session_id,
            user_id=user_id,
            book_id=book_id,
            start_time=start,
            end_time=start,
            duration=duration,
            total_words=total,
            known_words=known,
            unknown_words=total - known,
        )

    return _make


def history(*entries) -> list[StatusEntry]:
    """Build a status history from (known, datetime) pairs."""
    return [StatusEntry(status=ReviewStatus.from_known(k), date=d) for k, d in entries]


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config lookups from the developer's real files
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "LEXICARD_BACKEND",
        "LEXICARD_DATABASE_PATH",
        "LEXICARD_PORT",
        "LEXICARD_DEFAULT_TIMEFRAME",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
