"""Behaviour shared by every VocabularyRepository adapter."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from conftest import history, utc

from lexicard.domain.errors import NotFoundError
from lexicard.domain.models import StudySession, VocabularyBook, WordResult
from lexicard.infrastructure.adapters import MemoryRepository, SqliteRepository


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        r = MemoryRepository()
    else:
        r = SqliteRepository(tmp_path / "data" / "lexicard.db")
    yield r
    r.close()


def _book(book_id="b1", user_id="u1", updated_at=None, **kwargs):
    return VocabularyBook(
        id=book_id,
        name=f"Book {book_id}",
        user_id=user_id,
        created_at=updated_at or utc(2024, 1, 1),
        updated_at=updated_at or utc(2024, 1, 1),
        **kwargs,
    )


def _session(session_id, start, user_id="u1", **kwargs):
    return StudySession(id=session_id, user_id=user_id, book_id="b1", start_time=start, **kwargs)


@pytest.mark.asyncio
async def test_word_round_trip_keeps_review_state(repo, make_word):
    t = utc(2024, 2, 1, 9, 30, 15, 123456)
    word = make_word(
        "w1",
        known=True,
        examples=["uno", "dos"],
        pronunciation="OO-no",
        familiarity=3,
        review_count=2,
        incorrect_count=1,
        last_reviewed_at=t,
        next_review_at=t + timedelta(days=4),
        status_history=history((False, t - timedelta(days=2)), (True, t)),
    )
    await repo.save_word(word)

    loaded = await repo.get_word("w1")

    assert loaded == word
    assert loaded is not word


@pytest.mark.asyncio
async def test_missing_entities_raise_not_found(repo):
    with pytest.raises(NotFoundError):
        await repo.get_word("nope")
    with pytest.raises(NotFoundError):
        await repo.get_book("nope")
    with pytest.raises(NotFoundError):
        await repo.get_session("nope")
    with pytest.raises(NotFoundError):
        await repo.list_words("nope")


@pytest.mark.asyncio
async def test_add_words_refreshes_cached_counts(repo, make_word):
    await repo.save_book(_book())
    words = [make_word(f"w{i}", known=i < 6) for i in range(10)]
    await repo.add_words("b1", words)

    book = await repo.get_book("b1")
    assert (book.total_words, book.known_words, book.unknown_words) == (10, 6, 4)

    await repo.add_words("b1", [make_word("w10")])
    book = await repo.get_book("b1")
    assert (book.total_words, book.known_words, book.unknown_words) == (11, 6, 5)
    assert [w.id for w in await repo.list_words("b1")] == [f"w{i}" for i in range(11)]


@pytest.mark.asyncio
async def test_save_book_refreshes_passed_book(repo, make_word):
    await repo.save_book(_book())
    await repo.add_words("b1", [make_word("w1"), make_word("w2")])

    word = await repo.get_word("w1")
    word.is_known = True
    await repo.save_word(word)

    book = await repo.get_book("b1")
    assert book.known_words == 0
    await repo.save_book(book)
    assert (book.known_words, book.unknown_words) == (1, 1)
    assert (await repo.get_book("b1")).known_words == 1


@pytest.mark.asyncio
async def test_list_books_newest_first(repo):
    await repo.save_book(_book("old", updated_at=utc(2024, 1, 1)))
    await repo.save_book(_book("new", updated_at=utc(2024, 3, 1)))
    await repo.save_book(_book("other", user_id="u2"))

    assert [b.id for b in await repo.list_books("u1")] == ["new", "old"]


@pytest.mark.asyncio
async def test_user_words_and_books_with_word(repo, make_word):
    await repo.save_book(_book("b1"))
    await repo.save_book(_book("b2"))
    await repo.save_book(_book("b3", user_id="u2"))
    await repo.add_words("b1", [make_word("shared"), make_word("solo")])
    await repo.add_words("b3", [make_word("theirs")])

    book = await repo.get_book("b2")
    book.word_ids.append("shared")
    await repo.save_book(book)

    user_words = await repo.list_user_words("u1")
    assert sorted(w.id for w in user_words) == ["shared", "solo"]
    assert sorted(b.id for b in await repo.find_books_with_word("shared")) == ["b1", "b2"]


@pytest.mark.asyncio
async def test_remove_word(repo, make_word):
    await repo.save_book(_book())
    await repo.add_words("b1", [make_word("w1"), make_word("w2", known=True)])

    await repo.remove_word("b1", "w2")

    book = await repo.get_book("b1")
    assert book.word_ids == ["w1"]
    assert (book.total_words, book.known_words) == (1, 0)
    with pytest.raises(NotFoundError):
        await repo.get_word("w2")


@pytest.mark.asyncio
async def test_delete_book_keeps_or_drops_words(repo, make_word):
    await repo.save_book(_book("keep"))
    await repo.save_book(_book("drop"))
    await repo.add_words("keep", [make_word("k1")])
    await repo.add_words("drop", [make_word("d1")])

    await repo.delete_book("keep")
    await repo.delete_book("drop", delete_words=True)

    assert (await repo.get_word("k1")).id == "k1"
    with pytest.raises(NotFoundError):
        await repo.get_word("d1")
    with pytest.raises(NotFoundError):
        await repo.get_book("keep")
    with pytest.raises(NotFoundError):
        await repo.delete_book("keep")


@pytest.mark.asyncio
async def test_session_round_trip(repo):
    start = utc(2024, 2, 1, 9)
    session = _session(
        "s1",
        start,
        end_time=start + timedelta(minutes=3),
        duration=180_000,
        total_words=1,
        known_words=1,
        word_results=[WordResult("w1", True, 2500, start + timedelta(seconds=30))],
    )
    await repo.save_session(session)

    assert await repo.get_session("s1") == session


@pytest.mark.asyncio
async def test_list_sessions_filters_and_pages(repo):
    for day in range(1, 6):
        await repo.save_session(_session(f"s{day}", utc(2024, 1, day, 12)))
    await repo.save_session(_session("x", utc(2024, 1, 3), user_id="u2"))

    newest = await repo.list_sessions("u1")
    assert [s.id for s in newest] == ["s5", "s4", "s3", "s2", "s1"]

    window = await repo.list_sessions("u1", since=utc(2024, 1, 2), until=utc(2024, 1, 4, 12))
    assert [s.id for s in window] == ["s4", "s3", "s2"]

    page = await repo.list_sessions("u1", limit=2, skip=1)
    assert [s.id for s in page] == ["s4", "s3"]
    assert await repo.count_sessions("u1") == 5


@pytest.mark.asyncio
async def test_save_review_writes_both(repo, make_word):
    await repo.save_book(_book())
    await repo.add_words("b1", [make_word("w1")])
    session = _session("s1", utc(2024, 2, 1))
    await repo.save_session(session)

    word = await repo.get_word("w1")
    word.review_count = 1
    session.word_results.append(WordResult("w1", True, 100, utc(2024, 2, 1)))
    await repo.save_review(word, session)

    assert (await repo.get_word("w1")).review_count == 1
    assert len((await repo.get_session("s1")).word_results) == 1


@pytest.mark.asyncio
async def test_current_book_id_per_user(repo):
    await repo.save_book(_book("b1"))
    await repo.save_book(_book("b2"))
    assert await repo.get_current_book_id("u1") is None

    await repo.set_current_book_id("u1", "b1")
    await repo.set_current_book_id("u1", "b2")
    await repo.set_current_book_id("u2", "b1")

    assert await repo.get_current_book_id("u1") == "b2"
    assert await repo.get_current_book_id("u2") == "b1"


@pytest.mark.asyncio
async def test_deleting_book_clears_current_book_id(repo):
    await repo.save_book(_book("b1"))
    await repo.set_current_book_id("u1", "b1")

    await repo.delete_book("b1")

    assert await repo.get_current_book_id("u1") is None


@pytest.mark.asyncio
async def test_add_words_rolls_back_on_failure(repo, make_word):
    await repo.save_book(_book())

    with patch.object(repo, "_store_book", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            await repo.add_words("b1", [make_word("w1"), make_word("w2")])

    for word_id in ("w1", "w2"):
        with pytest.raises(NotFoundError):
            await repo.get_word(word_id)
    book = await repo.get_book("b1")
    assert book.word_ids == []
    assert book.total_words == 0


@pytest.mark.asyncio
async def test_delete_book_with_words_rolls_back_on_failure(repo, make_word):
    await repo.save_book(_book())
    await repo.add_words("b1", [make_word("w1"), make_word("w2")])
    await repo.set_current_book_id("u1", "b1")

    with patch.object(repo, "_drop_book", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            await repo.delete_book("b1", delete_words=True)

    assert (await repo.get_book("b1")).word_ids == ["w1", "w2"]
    assert [w.id for w in await repo.list_words("b1")] == ["w1", "w2"]
    assert await repo.get_current_book_id("u1") == "b1"


@pytest.mark.asyncio
async def test_save_review_rolls_back_on_failure(repo, make_word):
    await repo.save_book(_book())
    await repo.add_words("b1", [make_word("w1")])
    session = _session("s1", utc(2024, 2, 1))
    await repo.save_session(session)

    word = await repo.get_word("w1")
    word.review_count = 1
    word.familiarity = 1
    session.word_results.append(WordResult("w1", True, 100, utc(2024, 2, 1)))

    with patch.object(repo, "_store_session", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            await repo.save_review(word, session)

    stored = await repo.get_word("w1")
    assert stored.review_count == 0
    assert stored.familiarity == 0
    assert (await repo.get_session("s1")).word_results == []
