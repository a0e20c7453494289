"""
Review scheduler.

Picks the next review date from a fixed interval table indexed by review
count. Once a word has been reviewed five times every further review is
scheduled 30 days out.
"""

from datetime import datetime, timedelta

from lexicard.domain.constants import REVIEW_INTERVALS_DAYS
from lexicard.domain.errors import ValidationError


class ReviewScheduler:
    """
    Computes when a word should be reviewed next.

    Stateless and side-effect free.
    """

    def __init__(self, intervals: tuple[int, ...] = REVIEW_INTERVALS_DAYS):
        if not intervals:
            raise ValueError("intervals must not be empty")
        self.intervals = intervals

    def interval_for(self, review_count: int) -> int:
        """Interval in days for a review count; counts past the table reuse the last entry."""
        if review_count < 0:
            raise ValidationError(f"review_count must be >= 0, got {review_count}")
        index = min(review_count, len(self.intervals) - 1)
        return self.intervals[index]

    def compute_next_review(self, review_count: int, from_date: datetime) -> datetime:
        """
        Next review time, a whole number of days after from_date.

        The outcome of the latest review does not affect the interval.
        """
        return from_date + timedelta(days=self.interval_for(review_count))
