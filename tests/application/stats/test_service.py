from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import utc

from lexicard.application.stats import StatisticsService
from lexicard.domain.errors import ValidationError


@pytest.fixture
def mock_repo():
    repo = AsyncMock()
    repo.list_sessions.return_value = []
    repo.list_books.return_value = []
    repo.list_user_words.return_value = []
    return repo


@pytest.fixture
def mock_engine():
    return MagicMock()


@pytest.mark.asyncio
async def test_overall_feeds_sessions_and_books(mock_repo, mock_engine):
    service = StatisticsService(mock_repo, engine=mock_engine)

    result = await service.overall("u1")

    mock_repo.list_sessions.assert_awaited_once_with("u1")
    mock_repo.list_books.assert_awaited_once_with("u1")
    mock_engine.compute_overall_stats.assert_called_once_with([], [])
    assert result is mock_engine.compute_overall_stats.return_value


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "timeframe,start",
    [
        ("month", utc(2024, 2, 29, 12)),
        ("quarter", utc(2023, 12, 31, 12)),
        ("year", utc(2023, 3, 31, 12)),
    ],
)
async def test_activity_window(mock_repo, mock_engine, timeframe, start):
    service = StatisticsService(mock_repo, engine=mock_engine)

    await service.activity("u1", timeframe, utc(2024, 3, 31, 12))

    mock_repo.list_sessions.assert_awaited_once_with("u1", since=start)
    mock_engine.compute_activity_heatmap.assert_called_once_with([], start)


@pytest.mark.asyncio
async def test_activity_rejects_unknown_timeframe(mock_repo):
    service = StatisticsService(mock_repo)

    with pytest.raises(ValidationError):
        await service.activity("u1", "decade", utc(2024, 3, 31))
    mock_repo.list_sessions.assert_not_awaited()


@pytest.mark.asyncio
async def test_monthly_progress_window_starts_on_first_of_month(mock_repo):
    service = StatisticsService(mock_repo)
    now = utc(2024, 2, 15, 10)

    progress = await service.monthly_progress("u1", now)

    mock_repo.list_sessions.assert_awaited_once_with("u1", since=utc(2023, 3, 1), until=now)
    assert len(progress) == 12


@pytest.mark.asyncio
async def test_memory_curve_uses_user_words(mock_repo, make_word):
    mock_repo.list_user_words.return_value = [make_word()]
    service = StatisticsService(mock_repo)

    curve = await service.memory_curve("u1")

    mock_repo.list_user_words.assert_awaited_once_with("u1")
    assert curve.user_curve == curve.standard_curve
