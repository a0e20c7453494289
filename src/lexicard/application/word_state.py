"""
Per-word review state transitions.

A review outcome updates familiarity, counters, the status log and the next
review date of a word in place.
"""

from datetime import datetime

from lexicard.domain.constants import MAX_FAMILIARITY, MIN_FAMILIARITY
from lexicard.domain.models import ReviewStatus, StatusEntry, Word

from .scheduler import ReviewScheduler
from .utils.dates import ensure_utc

_default_scheduler = ReviewScheduler()


def apply_review_result(
    word: Word,
    known: bool,
    timestamp: datetime,
    scheduler: ReviewScheduler | None = None,
) -> Word:
    """
    Record one review of a word.

    is_known always mirrors the latest outcome, even when familiarity is high.
    All new values are computed before the word is touched, so a failure
    leaves the word unchanged.

    Returns:
        The same word, mutated.
    """
    scheduler = scheduler or _default_scheduler

    review_count = word.review_count + 1
    if known:
        familiarity = min(MAX_FAMILIARITY, word.familiarity + 1)
        incorrect_count = word.incorrect_count
    else:
        familiarity = max(MIN_FAMILIARITY, word.familiarity - 1)
        incorrect_count = word.incorrect_count + 1
    next_review_at = scheduler.compute_next_review(review_count, timestamp)

    word.status_history.append(StatusEntry(status=ReviewStatus.from_known(known), date=timestamp))
    word.review_count = review_count
    word.familiarity = familiarity
    word.incorrect_count = incorrect_count
    word.is_known = known
    word.last_reviewed_at = timestamp
    word.next_review_at = next_review_at
    word.updated_at = timestamp
    return word


def is_due(word: Word, now: datetime) -> bool:
    """A word is due when it is scheduled at or before now and not marked known."""
    if word.is_known or word.next_review_at is None:
        return False
    return ensure_utc(word.next_review_at) <= ensure_utc(now)
