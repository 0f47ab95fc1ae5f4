"""Tests for main application entrypoint."""

from collections.abc import Iterator
from contextlib import ExitStack
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.adapters.driven.http.client import HttpClient
from src.main import main, optional_endpoint_health_check
from src.ports.settings import SettingsPort

__all__ = []


def make_settings_port(health_endpoint: str | None) -> SettingsPort:
    return SettingsPort(
        period_in_sec=1,
        http_post_endpoint="http://localhost:8000/interestlist",
        http_health_check_endpoint=health_endpoint,
    )


@pytest.fixture
def mocks() -> Iterator[dict[str, Mock]]:
    """Patch every collaborator of main()."""
    with ExitStack() as stack:
        patched = {
            name: stack.enter_context(patch(f"src.main.{name}", **kwargs))
            for name, kwargs in {
                "configure_logs": {},
                "load_settings": {},
                "HttpClient": {},
                "Metrics": {},
                "make_stop_on_sigterm": {},
                "create_app": {},
                "start_http_server": {"new_callable": AsyncMock},
                "start_dispatch_loop": {"new_callable": AsyncMock},
                "optional_endpoint_health_check": {"new_callable": AsyncMock},
            }.items()
        }

        config = Mock()
        config.period_in_sec = 1.0
        config.http_post_endpoint = "http://localhost:8000/interestlist"
        config.timezone = "Europe/Amsterdam"
        config.listen_host = "127.0.0.1"
        config.listen_port = 8080
        config.http_headers = {}
        config.http_health_endpoint = None
        config.shutdown_grace_sec = 1.0
        config.log_level = "INFO"
        patched["load_settings"].return_value = config

        http_client = AsyncMock()
        http_client.__aenter__.return_value = http_client
        patched["HttpClient"].return_value = http_client

        patched["start_http_server"].return_value = AsyncMock()
        patched["optional_endpoint_health_check"].return_value = True
        yield patched


@pytest.mark.asyncio
async def test_optional_endpoint_health_check_when_disabled() -> None:
    """Health check should return True when endpoint not configured."""
    result = await optional_endpoint_health_check(make_settings_port(None), HttpClient())

    assert result is True


@pytest.mark.asyncio
async def test_optional_endpoint_health_check_succeeds() -> None:
    """Health check should return True when probe succeeds."""
    http_client = HttpClient()

    with patch.object(http_client, "probe", new_callable=AsyncMock) as mock_probe:
        mock_probe.return_value = True
        result = await optional_endpoint_health_check(
            make_settings_port("http://localhost:8000/health"), http_client
        )

    assert result is True
    mock_probe.assert_called_once_with(url="http://localhost:8000/health")


@pytest.mark.asyncio
async def test_optional_endpoint_health_check_fails() -> None:
    """Health check should return False when probe fails."""
    http_client = HttpClient()

    with patch.object(http_client, "probe", new_callable=AsyncMock) as mock_probe:
        mock_probe.return_value = False
        result = await optional_endpoint_health_check(
            make_settings_port("http://localhost:8000/health"), http_client
        )

    assert result is False


@pytest.mark.asyncio
async def test_main_wires_store_into_listener_and_loop(mocks: dict[str, Mock]) -> None:
    """The same store instance feeds the listener and the dispatch loop."""
    await main()

    store = mocks["create_app"].call_args.args[0]
    assert mocks["start_dispatch_loop"].call_args.kwargs["store"] is store
    assert mocks["create_app"].call_args.args[1] == "Europe/Amsterdam"
    mocks["start_http_server"].assert_awaited_once()
    mocks["start_http_server"].return_value.cleanup.assert_awaited_once()


@pytest.mark.asyncio
async def test_main_shares_stop_event_with_listener_and_loop(mocks: dict[str, Mock]) -> None:
    """One stop event wakes the loop and makes the listener refuse new items."""
    await main()

    stop = mocks["make_stop_on_sigterm"].return_value
    loop_kwargs = mocks["start_dispatch_loop"].call_args.kwargs
    assert loop_kwargs["stop_event"] is stop
    assert loop_kwargs["stop_fn"] == stop.is_set
    assert mocks["create_app"].call_args.kwargs["is_stopping"] == stop.is_set


@pytest.mark.asyncio
async def test_main_stops_on_configuration_error(mocks: dict[str, Mock]) -> None:
    """Invalid configuration aborts before anything starts."""
    mocks["load_settings"].side_effect = ValueError("bad zone")

    await main()

    mocks["start_http_server"].assert_not_called()
    mocks["start_dispatch_loop"].assert_not_called()


@pytest.mark.asyncio
async def test_main_aborts_on_health_check_failure(mocks: dict[str, Mock]) -> None:
    """Main should abort startup if health check fails."""
    mocks["optional_endpoint_health_check"].return_value = False

    await main()

    mocks["start_http_server"].assert_not_called()
    mocks["start_dispatch_loop"].assert_not_called()


@pytest.mark.asyncio
async def test_main_aborts_when_listener_cannot_bind(mocks: dict[str, Mock]) -> None:
    """A bind failure is fatal: the dispatch loop never starts."""
    mocks["start_http_server"].side_effect = OSError(98, "Address already in use")

    await main()

    mocks["start_dispatch_loop"].assert_not_called()


@pytest.mark.asyncio
async def test_main_handles_loop_exception(mocks: dict[str, Mock]) -> None:
    """Errors escaping the loop are logged and the listener is still stopped."""
    mocks["start_dispatch_loop"].side_effect = RuntimeError("Test error in loop")

    with patch("src.main.logger") as mock_logger:
        await main()

    mock_logger.error.assert_called()
    mocks["start_http_server"].return_value.cleanup.assert_awaited_once()
