"""
Statistics Service: Application layer orchestrator.

Coordinates fetching sessions, books and words from the repository and
feeding them to the statistics engine.
"""

import logging
from datetime import date, datetime

from lexicard.application.utils.dates import shift_months, start_of_month
from lexicard.domain.constants import MONTHLY_WINDOW, TIMEFRAME_MONTHS
from lexicard.domain.errors import ValidationError
from lexicard.domain.ports import VocabularyRepository

from .engine import MemoryCurve, MonthlyProgress, OverallStats, StatisticsEngine

logger = logging.getLogger(__name__)


class StatisticsService:
    """
    Application service for the four statistics views.

    Follows Dependency Inversion: depends on VocabularyRepository abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        repo: VocabularyRepository,
        engine: StatisticsEngine | None = None,
    ):
        """
        Args:
            repo: The repository (port) for fetching study data.
            engine: Optional custom engine; uses default if not provided.
        """
        self._repo = repo
        self._engine = engine or StatisticsEngine()

    async def overall(self, user_id: str) -> OverallStats:
        sessions = await self._repo.list_sessions(user_id)
        books = await self._repo.list_books(user_id)
        return self._engine.compute_overall_stats(sessions, books)

    async def activity(self, user_id: str, timeframe: str, now: datetime) -> dict[date, int]:
        """
        Words studied per day over the last month, quarter or year.

        Raises:
            ValidationError: Unknown timeframe.
        """
        months = TIMEFRAME_MONTHS.get(timeframe)
        if months is None:
            raise ValidationError(
                f"Unknown timeframe '{timeframe}'",
                errors=[f"timeframe must be one of {sorted(TIMEFRAME_MONTHS)}"],
            )

        start = shift_months(now, -months)
        sessions = await self._repo.list_sessions(user_id, since=start)
        return self._engine.compute_activity_heatmap(sessions, start)

    async def monthly_progress(self, user_id: str, now: datetime) -> list[MonthlyProgress]:
        start = start_of_month(shift_months(now, -(MONTHLY_WINDOW - 1)))
        sessions = await self._repo.list_sessions(user_id, since=start, until=now)
        return self._engine.compute_monthly_progress(sessions, now)

    async def memory_curve(self, user_id: str) -> MemoryCurve:
        words = await self._repo.list_user_words(user_id)
        reviewed = [w for w in words if len(w.status_history) >= 2]
        logger.debug(f"Memory curve for {user_id}: {len(reviewed)}/{len(words)} words with history")
        return self._engine.compute_memory_curve(words)
