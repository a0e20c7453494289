"""
Statistics engine for deriving study insights from raw review data.

This is a pure computation module with no I/O. Empty or sparse input
degrades to zeros and reference values; nothing here raises on missing data.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime

from lexicard.application.utils.dates import (
    calendar_day,
    ensure_utc,
    month_index,
    round_half_up,
)
from lexicard.domain.constants import (
    MONTH_LABELS,
    MONTHLY_WINDOW,
    RETENTION_INTERVALS_DAYS,
    RETENTION_TOLERANCE,
    STANDARD_CURVE,
)
from lexicard.domain.models import ReviewStatus, StudySession, VocabularyBook, Word

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class OverallStats:
    """Headline numbers for a user's dashboard."""

    total_words: int
    known_words: int
    unknown_words: int
    mastery_rate: int  # Percent of known words
    total_study_time: int  # Milliseconds
    study_days: int  # Distinct calendar days with a session
    longest_streak: int
    current_streak: int
    average_words_per_day: float


@dataclass(frozen=True)
class MonthlyProgress:
    month: str  # YYYY-MM
    label: str  # Short month name
    learned: int
    mastered: int


@dataclass(frozen=True)
class RetentionPoint:
    day: int
    retention: int  # Percent


@dataclass(frozen=True)
class MemoryCurve:
    standard_curve: list[RetentionPoint]
    user_curve: list[RetentionPoint]


@dataclass
class _Tally:
    correct: int = 0
    total: int = 0


@dataclass
class _MonthBucket:
    learned: int = 0
    mastered: int = 0


class StatisticsEngine:
    """
    Computes reporting views from sessions, books and word histories.

    Stateless and side-effect free.
    """

    def compute_overall_stats(
        self,
        sessions: list[StudySession],
        books: list[VocabularyBook],
    ) -> OverallStats:
        """
        Summarize a user's vocabulary and study habits.

        Word counts come from the books' cached counters.
        """
        total_words = sum(b.total_words for b in books)
        known_words = sum(b.known_words for b in books)
        unknown_words = sum(b.unknown_words for b in books)

        mastery_rate = round_half_up(known_words / total_words * 100) if total_words > 0 else 0
        total_study_time = sum(s.duration or 0 for s in sessions)

        study_days, current_streak, longest_streak = self._compute_streaks(sessions)

        average_words_per_day = (
            round_half_up(total_words / len(study_days), 1) if study_days else 0.0
        )

        return OverallStats(
            total_words=total_words,
            known_words=known_words,
            unknown_words=unknown_words,
            mastery_rate=mastery_rate,
            total_study_time=total_study_time,
            study_days=len(study_days),
            longest_streak=longest_streak,
            current_streak=current_streak,
            average_words_per_day=average_words_per_day,
        )

    def _compute_streaks(self, sessions: list[StudySession]) -> tuple[set[date], int, int]:
        """
        Walk sessions in start order and count consecutive study days.

        A one-day gap extends the streak, a longer gap restarts it at 1, and a
        second session on the same day leaves it unchanged.
        """
        ordered = sorted(sessions, key=lambda s: ensure_utc(s.start_time))

        study_days: set[date] = set()
        current_streak = 0
        longest_streak = 0
        last_day: date | None = None

        for session in ordered:
            day = calendar_day(session.start_time)
            study_days.add(day)

            if last_day is None:
                current_streak = 1
            else:
                gap = (day - last_day).days
                if gap == 1:
                    current_streak += 1
                elif gap > 1:
                    current_streak = 1

            longest_streak = max(longest_streak, current_streak)
            last_day = day

        return study_days, current_streak, longest_streak

    def compute_activity_heatmap(
        self,
        sessions: list[StudySession],
        timeframe_start: datetime,
    ) -> dict[date, int]:
        """
        Words studied per calendar day since timeframe_start.

        Days without sessions are absent from the result.
        """
        start = ensure_utc(timeframe_start)
        activity: dict[date, int] = defaultdict(int)

        for session in sessions:
            if ensure_utc(session.start_time) < start:
                continue
            activity[calendar_day(session.start_time)] += session.total_words

        return dict(sorted(activity.items()))

    def compute_monthly_progress(
        self,
        sessions: list[StudySession],
        end_date: datetime,
    ) -> list[MonthlyProgress]:
        """
        Learned and mastered word counts for the twelve months ending at end_date.

        Every month in the window is present even without sessions. Buckets
        are ordered by absolute year-month, so a window spanning January stays
        chronological.
        """
        end = ensure_utc(end_date)
        last = month_index(end)
        first = last - (MONTHLY_WINDOW - 1)

        buckets = {idx: _MonthBucket() for idx in range(first, last + 1)}
        for session in sessions:
            start = ensure_utc(session.start_time)
            if start > end:
                continue
            bucket = buckets.get(month_index(start))
            if bucket is None:
                continue
            bucket.learned += session.total_words
            bucket.mastered += session.known_words

        progress = []
        for idx in sorted(buckets):
            year, month0 = divmod(idx, 12)
            progress.append(
                MonthlyProgress(
                    month=f"{year:04d}-{month0 + 1:02d}",
                    label=MONTH_LABELS[month0],
                    learned=buckets[idx].learned,
                    mastered=buckets[idx].mastered,
                )
            )
        return progress

    def compute_memory_curve(self, words: list[Word]) -> MemoryCurve:
        """
        Compare the user's measured retention with the standard forgetting curve.

        Consecutive reviews of the same word are matched to the nearest
        reference interval if the gap lies within 30% of it. Retention at an
        interval is the share of matched reviews marked known; intervals
        without samples fall back to the standard curve.
        """
        tallies = {interval: _Tally() for interval in RETENTION_INTERVALS_DAYS}

        for word in words:
            if len(word.status_history) < 2:
                continue

            history = sorted(word.status_history, key=lambda e: ensure_utc(e.date))
            for prev, current in zip(history, history[1:]):
                elapsed = ensure_utc(current.date) - ensure_utc(prev.date)
                days_diff = round_half_up(elapsed.total_seconds() / SECONDS_PER_DAY)

                # min() keeps the first (shorter) interval on ties
                nearest = min(RETENTION_INTERVALS_DAYS, key=lambda i: abs(i - days_diff))
                if abs(nearest - days_diff) > nearest * RETENTION_TOLERANCE:
                    continue

                tallies[nearest].total += 1
                if current.status == ReviewStatus.KNOWN:
                    tallies[nearest].correct += 1

        user_curve = [RetentionPoint(day=0, retention=100)]
        for interval, tally in tallies.items():
            if tally.total > 0:
                retention = round_half_up(tally.correct / tally.total * 100)
            else:
                retention = STANDARD_CURVE.get(interval, 0)
            user_curve.append(RetentionPoint(day=interval, retention=retention))
        user_curve.sort(key=lambda p: p.day)

        standard_curve = [
            RetentionPoint(day=day, retention=retention)
            for day, retention in sorted(STANDARD_CURVE.items())
        ]
        return MemoryCurve(standard_curve=standard_curve, user_curve=user_curve)
