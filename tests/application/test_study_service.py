from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from lexicard.application.library_service import LibraryService
from lexicard.application.study_service import StudyService
from lexicard.domain.errors import InvalidStateError, NotFoundError, ValidationError
from lexicard.domain.models import SessionState, WordDraft


@pytest.fixture
def study(memory_repo):
    return StudyService(memory_repo)


@pytest_asyncio.fixture
async def seeded(memory_repo, now):
    library = LibraryService(memory_repo)
    book = await library.create_book("u1", "Travel", now - timedelta(days=1))
    drafts = [WordDraft(word=w, definition=f"meaning of {w}") for w in ("uno", "dos", "tres")]
    words = await library.import_words(book.id, drafts, now - timedelta(days=1))
    return book, words


@pytest.mark.asyncio
async def test_full_session_flow(study, memory_repo, seeded, now):
    book, words = seeded

    session = await study.start_session("u1", book.id, now)
    assert (await memory_repo.get_book(book.id)).last_studied == now

    for i, (word, known) in enumerate(zip(words, [True, True, False])):
        status = await study.record_word_result(
            session.id, word.id, known, 1200, now + timedelta(seconds=10 * i)
        )
        assert status.is_known is known

    summary = await study.end_session(session.id, now + timedelta(minutes=2))

    assert summary.duration == 120_000
    assert (summary.total_words, summary.known_words, summary.unknown_words) == (3, 2, 1)

    stored = await memory_repo.get_session(session.id)
    assert stored.state == SessionState.CLOSED
    assert len(stored.word_results) == 3

    refreshed = await memory_repo.get_book(book.id)
    assert (refreshed.known_words, refreshed.unknown_words) == (2, 1)

    reviewed = await memory_repo.get_word(words[0].id)
    assert reviewed.review_count == 1
    assert reviewed.familiarity == 1


@pytest.mark.asyncio
async def test_start_session_unknown_book(study, now):
    with pytest.raises(NotFoundError):
        await study.start_session("u1", "book_missing", now)


@pytest.mark.asyncio
async def test_end_session_twice(study, seeded, now):
    book, _ = seeded
    session = await study.start_session("u1", book.id, now)
    await study.end_session(session.id, now + timedelta(minutes=1))

    with pytest.raises(InvalidStateError):
        await study.end_session(session.id, now + timedelta(minutes=5))


@pytest.mark.asyncio
async def test_rejected_result_leaves_word_untouched(study, memory_repo, seeded, now):
    book, words = seeded
    session = await study.start_session("u1", book.id, now)

    with pytest.raises(ValidationError):
        await study.record_word_result(session.id, words[0].id, True, -1, now)

    word = await memory_repo.get_word(words[0].id)
    assert word.review_count == 0
    assert (await memory_repo.get_session(session.id)).word_results == []


@pytest.mark.asyncio
async def test_record_on_closed_session(study, memory_repo, seeded, now):
    book, words = seeded
    session = await study.start_session("u1", book.id, now)
    await study.end_session(session.id, now)

    with pytest.raises(InvalidStateError):
        await study.record_word_result(session.id, words[0].id, True, 10, now)
    assert (await memory_repo.get_word(words[0].id)).review_count == 0


@pytest.mark.asyncio
async def test_failed_write_applies_nothing(memory_repo, seeded, now):
    book, words = seeded
    study = StudyService(memory_repo)
    session = await study.start_session("u1", book.id, now)
    memory_repo.save_review = AsyncMock(side_effect=RuntimeError("disk full"))

    with pytest.raises(RuntimeError):
        await study.record_word_result(session.id, words[0].id, True, 10, now)

    assert (await memory_repo.get_word(words[0].id)).review_count == 0
    assert (await memory_repo.get_session(session.id)).word_results == []


@pytest.mark.asyncio
async def test_user_sessions_paging(study, seeded, now):
    book, _ = seeded
    ids = []
    for i in range(3):
        s = await study.start_session("u1", book.id, now + timedelta(hours=i))
        ids.append(s.id)

    page = await study.user_sessions("u1", limit=2, skip=0)
    assert [s.id for s in page.sessions] == [ids[2], ids[1]]
    assert (page.total, page.total_pages) == (3, 2)

    second = await study.user_sessions("u1", limit=2, skip=2)
    assert [s.id for s in second.sessions] == [ids[0]]

    with pytest.raises(ValidationError):
        await study.user_sessions("u1", limit=0)


@pytest.mark.asyncio
async def test_session_details_resolves_words(study, memory_repo, seeded, now):
    book, words = seeded
    session = await study.start_session("u1", book.id, now)
    await study.record_word_result(session.id, words[0].id, True, 10, now)
    await study.record_word_result(session.id, words[0].id, False, 10, now)
    await study.record_word_result(session.id, words[1].id, True, 10, now)
    await memory_repo.remove_word(book.id, words[1].id)

    details = await study.session_details(session.id)

    assert details.book.id == book.id
    assert list(details.words) == [words[0].id]
    assert len(details.session.word_results) == 3
