# Application Stats Package
from .engine import MemoryCurve, MonthlyProgress, OverallStats, RetentionPoint, StatisticsEngine
from .service import StatisticsService

__all__ = [
    "StatisticsEngine",
    "StatisticsService",
    "OverallStats",
    "MonthlyProgress",
    "RetentionPoint",
    "MemoryCurve",
]
