# tests/conftest.py
"""
Shared fixtures: a mocked market-data fetcher, fast polling policies and
sample price records.
"""

import logging
import threading
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from pricesync.api import CoinGeckoMarketFetcher
from pricesync.models import Coin, PriceUpdate
from pricesync.services import PollingPolicy, PriceBroadcaster, PriceUpdateService


@pytest.fixture
def bitcoin_update():
    return PriceUpdate(id="bitcoin", current_price=50000.0, price_change_percentage_24h=2.5)


@pytest.fixture
def sample_coins():
    return [
        Coin(id="bitcoin", symbol="btc", name="Bitcoin", current_price=48000.0,
             price_change_percentage_24h=1.0, market_cap=9.4e11),
        Coin(id="ethereum", symbol="eth", name="Ethereum", current_price=3000.0,
             price_change_percentage_24h=-0.5, market_cap=3.6e11),
    ]


@pytest.fixture
def mock_fetcher(bitcoin_update):
    fetcher = MagicMock(spec=CoinGeckoMarketFetcher)
    fetcher.get_prices.return_value = [bitcoin_update]
    return fetcher


@pytest.fixture
def slow_policy():
    """Ticks far apart: only the immediate fetch runs during a test."""
    return PollingPolicy(interval_seconds=60.0, skip_overlapping_ticks=True)


@pytest.fixture
def fast_policy():
    return PollingPolicy(interval_seconds=0.02, skip_overlapping_ticks=True)


@pytest_asyncio.fixture
async def make_service():
    """Builds services and closes every one of them at teardown."""
    services = []

    def _make(fetcher, policy):
        service = PriceUpdateService(fetcher=fetcher, broadcaster=PriceBroadcaster(), policy=policy)
        services.append(service)
        return service

    yield _make
    for service in services:
        await service.close()


@pytest.fixture
def gate():
    """A threading.Event that blocked fetches wait on; always released at teardown."""
    release = threading.Event()
    yield release
    release.set()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
