"""
Library Service: books and the words inside them.

Owns every write that changes a book's word set or a word's known state,
so the book stats cache is refreshed whenever it could go stale.
"""

import logging
from datetime import datetime

from lexicard.domain.errors import NotFoundError, ValidationError
from lexicard.domain.models import VocabularyBook, Word, WordDraft
from lexicard.domain.ports import VocabularyRepository

from .id_service import generate_id
from .utils.dates import ensure_utc
from .word_state import apply_review_result, is_due

logger = logging.getLogger(__name__)


class LibraryService:
    """Application service for vocabulary books and their words."""

    def __init__(self, repo: VocabularyRepository):
        self._repo = repo

    # ---------- Books ----------

    async def create_book(
        self,
        user_id: str,
        name: str,
        now: datetime,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> VocabularyBook:
        name = name.strip()
        if not name:
            raise ValidationError("Book name must not be empty")

        book = VocabularyBook(
            id=generate_id("book"),
            name=name,
            user_id=user_id,
            description=description,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )
        await self._repo.save_book(book)
        logger.info(f"Created book {book.id} '{book.name}' for {user_id}")
        return book

    async def update_book(
        self,
        book_id: str,
        now: datetime,
        name: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> VocabularyBook:
        """Update only the fields that were provided."""
        book = await self._repo.get_book(book_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Book name must not be empty")
            book.name = name
        if description:
            book.description = description
        if tags:
            book.tags = list(tags)
        book.updated_at = now
        await self._repo.save_book(book)
        return book

    async def delete_book(self, book_id: str, delete_words: bool = False) -> None:
        await self._repo.delete_book(book_id, delete_words=delete_words)
        logger.info(f"Deleted book {book_id} (delete_words={delete_words})")

    async def get_book(self, book_id: str) -> VocabularyBook:
        return await self._repo.get_book(book_id)

    async def list_books(self, user_id: str) -> list[VocabularyBook]:
        return await self._repo.list_books(user_id)

    async def current_book(
        self, user_id: str, current_book_id: str | None = None
    ) -> VocabularyBook:
        """
        The book the user is studying.

        Prefers current_book_id, then the book stored by set_current_book(),
        as long as it exists and belongs to the user. Otherwise the most
        recently updated book.

        Raises:
            NotFoundError: The user has no books.
        """
        current_book_id = current_book_id or await self._repo.get_current_book_id(user_id)
        if current_book_id:
            try:
                book = await self._repo.get_book(current_book_id)
            except NotFoundError:
                logger.warning(f"Current book {current_book_id} not found, using latest")
            else:
                if book.user_id == user_id:
                    return book
                logger.warning(f"Book {current_book_id} does not belong to {user_id}")

        books = await self._repo.list_books(user_id)
        if not books:
            raise NotFoundError("book", f"user:{user_id}")
        return books[0]

    async def set_current_book(self, user_id: str, book_id: str) -> VocabularyBook:
        """
        Remember the book a user is studying.

        Raises:
            NotFoundError: The book does not exist or belongs to another user.
        """
        book = await self._repo.get_book(book_id)
        if book.user_id != user_id:
            raise NotFoundError("book", book_id)

        await self._repo.set_current_book_id(user_id, book_id)
        logger.info(f"Current book of {user_id} is now {book_id}")
        return book

    # ---------- Words ----------

    async def words_in_book(self, book_id: str) -> list[Word]:
        await self._repo.get_book(book_id)
        return await self._repo.list_words(book_id)

    async def add_word(self, book_id: str, draft: WordDraft, now: datetime) -> Word:
        words = await self.import_words(book_id, [draft], now)
        return words[0]

    async def import_words(
        self, book_id: str, drafts: list[WordDraft], now: datetime
    ) -> list[Word]:
        """
        Add many words to a book in one transaction.

        Raises:
            ValidationError: No words, or a word without text or definition.
            NotFoundError: The book does not exist.
        """
        if not drafts:
            raise ValidationError("No words to import")

        errors = [
            f"word {idx}: word and definition are required"
            for idx, d in enumerate(drafts, start=1)
            if not d.word.strip() or not d.definition.strip()
        ]
        if errors:
            raise ValidationError(f"{len(errors)} invalid word(s)", errors=errors)

        words = [_word_from_draft(d, now) for d in drafts]
        await self._repo.add_words(book_id, words)
        logger.info(f"Imported {len(words)} words into book {book_id}")
        return words

    async def delete_word(self, book_id: str, word_id: str) -> None:
        await self._repo.remove_word(book_id, word_id)

    async def mark_word(self, word_id: str, known: bool, now: datetime) -> Word:
        """Apply a review outside any study session and refresh affected books."""
        word = await self._repo.get_word(word_id)
        apply_review_result(word, known, now)
        await self._repo.save_word(word)

        for book in await self._repo.find_books_with_word(word_id):
            await self._repo.save_book(book)
        return word

    async def words_due(self, user_id: str, now: datetime) -> list[Word]:
        """
        Words scheduled at or before now that are not marked known.

        Sorted by next_review_at, earliest first.
        """
        words = await self._repo.list_user_words(user_id)

        seen: set[str] = set()
        due: list[Word] = []
        for word in words:
            if word.id in seen or not is_due(word, now):
                continue
            seen.add(word.id)
            due.append(word)

        due.sort(key=lambda w: ensure_utc(w.next_review_at))
        return due


def _word_from_draft(draft: WordDraft, now: datetime) -> Word:
    return Word(
        id=generate_id("word"),
        word=draft.word.strip(),
        definition=draft.definition.strip(),
        examples=list(draft.examples),
        pronunciation=draft.pronunciation,
        created_at=now,
        updated_at=now,
    )
