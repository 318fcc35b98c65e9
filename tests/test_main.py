import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def main_module(restore_root_logger):
    import main
    return main


def test_import_creates_no_event_loop_objects(main_module):
    assert main_module.shutdown_event is None
    # A signal before the runner starts is logged and otherwise ignored
    main_module.handle_shutdown_signal(signal.SIGINT, None)


@pytest.mark.asyncio
async def test_main_runner_binds_shutdown_event_to_running_loop(main_module, monkeypatch):
    watchlist = MagicMock()
    watchlist.load = AsyncMock(return_value=False)
    watchlist.error = "Failed to load cryptocurrency data. Please try again later."
    monkeypatch.setattr(main_module, "CoinWatchlist", MagicMock(return_value=watchlist))
    monkeypatch.setattr(main_module, "open_portfolio_store", MagicMock())
    monkeypatch.setattr(main_module, "shutdown_event", None)

    await main_module.main_runner()

    assert isinstance(main_module.shutdown_event, asyncio.Event)
    main_module.handle_shutdown_signal(signal.SIGTERM, None)
    assert main_module.shutdown_event.is_set()
    watchlist.detach.assert_called_once_with()
