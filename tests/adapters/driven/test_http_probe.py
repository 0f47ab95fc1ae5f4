"""Tests for downstream health check probing."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from src.adapters.driven.http.client import PROBE_RETRIES, HttpClient

__all__ = []


@pytest.mark.asyncio
async def test_probe_success() -> None:
    """probe() should return True when GET succeeds with a 2xx status."""
    client = HttpClient()
    client.session = AsyncMock()

    mock_response = AsyncMock()
    mock_response.status = 200
    client.session.get = AsyncMock(return_value=mock_response)

    result = await client.probe("http://example.com")

    assert result is True
    client.session.get.assert_called_once()


@pytest.mark.asyncio
async def test_probe_failure() -> None:
    """probe() should return False for non-2xx status codes."""
    client = HttpClient()
    client.session = AsyncMock()

    mock_response = AsyncMock()
    mock_response.status = 503
    client.session.get = AsyncMock(return_value=mock_response)

    result = await client.probe("http://example.com")

    assert result is False


@pytest.mark.asyncio
async def test_probe_retries_transient_errors() -> None:
    """Connection errors are retried up to PROBE_RETRIES times."""
    client = HttpClient()
    client.session = AsyncMock()
    client.session.get = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

    with patch("src.adapters.driven.http.retry.asyncio.sleep", new=AsyncMock()):
        result = await client.probe("http://example.com")

    assert result is False
    assert client.session.get.call_count == PROBE_RETRIES


@pytest.mark.asyncio
async def test__probe_once_raises_if_session_not_initialized() -> None:
    """_probe_once should raise if session is None."""
    client = HttpClient()
    client.session = None

    with pytest.raises(RuntimeError, match="Session not initialized"):
        await client._probe_once("http://example.com")
