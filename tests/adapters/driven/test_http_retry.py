"""Tests for the probe retry decorator."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from src.adapters.driven.http.retry import retry

__all__ = []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [
        aiohttp.ClientConnectionError("refused"),
        aiohttp.ClientOSError(104, "reset"),
        aiohttp.ServerTimeoutError("slow"),
        aiohttp.ClientPayloadError("truncated"),
        asyncio.TimeoutError(),
    ],
)
async def test_retry_decorator_retries_on_transient_errors(exc: BaseException) -> None:
    """Retry decorator should retry on transient errors."""
    mock_fn = AsyncMock(side_effect=exc)
    wrapped = retry(times=3)(mock_fn)

    with (
        patch("src.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()),
        pytest.raises(type(exc)),
    ):
        await wrapped()

    assert mock_fn.call_count == 3


@pytest.mark.asyncio
async def test_retry_decorator_recovers_after_transient_error() -> None:
    """A later success is returned."""
    fake_response = AsyncMock()
    fake_response.status = 200
    mock_fn = AsyncMock(side_effect=[aiohttp.ClientConnectionError("refused"), fake_response])
    wrapped = retry(times=3)(mock_fn)

    with patch("src.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()):
        result = await wrapped()

    assert result is fake_response
    assert mock_fn.call_count == 2


@pytest.mark.asyncio
async def test_retry_decorator_does_not_retry_permanent_errors() -> None:
    """Retry decorator should not retry non-transient errors."""
    mock_fn = AsyncMock(side_effect=ValueError("Invalid request"))
    wrapped = retry(times=3)(mock_fn)

    with pytest.raises(ValueError):
        await wrapped()

    assert mock_fn.call_count == 1


@pytest.mark.asyncio
async def test_retry_decorator_uses_configured_delays() -> None:
    """Delays follow delay_sec, reusing the last value."""
    mock_fn = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
    wrapped = retry(times=4, delay_sec=(0.1, 0.2))(mock_fn)

    mock_sleep = AsyncMock()
    with (
        patch("src.adapters.driven.http.retry.asyncio.sleep", mock_sleep),
        pytest.raises(aiohttp.ClientConnectionError),
    ):
        await wrapped()

    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2, 0.2]


def test_retry_rejects_zero_attempts() -> None:
    """At least one attempt is required."""
    with pytest.raises(ValueError):
        retry(times=0)
