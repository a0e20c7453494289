"""Centralized constants for lexicard.

Scheduling tables and statistics reference values live here so every layer
imports from a single source of truth.
"""

# ---------- Familiarity ----------
MIN_FAMILIARITY = 0
MAX_FAMILIARITY = 5

# ---------- Review Scheduling ----------
# Days until the next review, indexed by review count. Saturates at the last entry.
REVIEW_INTERVALS_DAYS = (1, 2, 4, 7, 15, 30)

# ---------- Retention Curve ----------
STANDARD_CURVE = {0: 100, 1: 70, 2: 60, 4: 50, 7: 40, 14: 30, 30: 20, 60: 15, 90: 10}
RETENTION_INTERVALS_DAYS = (1, 2, 4, 7, 14, 30, 60, 90)
RETENTION_TOLERANCE = 0.3

# ---------- Progress ----------
MONTHLY_WINDOW = 12
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Months covered by each activity heatmap timeframe
TIMEFRAME_MONTHS = {"month": 1, "quarter": 3, "year": 12}

# ---------- Sessions ----------
DEFAULT_SESSION_PAGE_SIZE = 10
