from datetime import timedelta

import pytest
from conftest import utc

from lexicard.application.scheduler import ReviewScheduler
from lexicard.domain.errors import ValidationError


@pytest.fixture
def scheduler():
    return ReviewScheduler()


@pytest.mark.parametrize(
    "review_count,days",
    [(0, 1), (1, 2), (2, 4), (3, 7), (4, 15), (5, 30), (6, 30), (50, 30)],
)
def test_interval_table_saturates(scheduler, review_count, days):
    assert scheduler.interval_for(review_count) == days


def test_compute_next_review_adds_whole_days(scheduler):
    base = utc(2024, 1, 31, 8, 30)
    assert scheduler.compute_next_review(2, base) == utc(2024, 2, 4, 8, 30)


def test_next_review_never_shrinks_with_count(scheduler):
    base = utc(2024, 1, 1)
    dates = [scheduler.compute_next_review(n, base) for n in range(10)]
    assert dates == sorted(dates)
    assert all(d - base >= timedelta(days=1) for d in dates)


def test_negative_review_count_rejected(scheduler):
    with pytest.raises(ValidationError):
        scheduler.interval_for(-1)


def test_custom_intervals():
    scheduler = ReviewScheduler(intervals=(3,))
    assert scheduler.interval_for(0) == 3
    assert scheduler.interval_for(9) == 3

    with pytest.raises(ValueError):
        ReviewScheduler(intervals=())
