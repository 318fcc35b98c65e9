from unittest.mock import MagicMock

import pytest

from pricesync.api import CoinGeckoMarketFetcher, PriceFetchError
from pricesync.models import PriceUpdate
from pricesync.services import CoinWatchlist, PriceUpdateService, merge_price_updates
from pricesync.services.watchlist import BOOTSTRAP_ERROR_MESSAGE
from tests.helpers import wait_until


def test_merge_updates_only_matching_coins(sample_coins, bitcoin_update):
    merged = merge_price_updates(sample_coins, [bitcoin_update])

    assert merged[0].current_price == 50000.0
    assert merged[0].price_change_percentage_24h == 2.5
    assert merged[0].name == "Bitcoin"
    assert merged[1] == sample_coins[1]


def test_merge_is_idempotent(sample_coins, bitcoin_update):
    once = merge_price_updates(sample_coins, [bitcoin_update])
    twice = merge_price_updates(once, [bitcoin_update])

    assert twice == once
    assert len(twice) == len(sample_coins)


def test_merge_ignores_unknown_ids_and_leaves_input_alone(sample_coins):
    unknown = PriceUpdate(id="dogecoin", current_price=0.1, price_change_percentage_24h=5.0)
    original = list(sample_coins)

    merged = merge_price_updates(sample_coins, [unknown])

    assert merged == original
    assert sample_coins == original


def make_service_mock():
    service = MagicMock(spec=PriceUpdateService)
    service.subscribe.return_value = MagicMock(name="unsubscribe")
    return service


@pytest.mark.asyncio
async def test_load_seeds_coins_and_starts_updates(sample_coins):
    fetcher = MagicMock(spec=CoinGeckoMarketFetcher)
    fetcher.get_markets.return_value = sample_coins
    service = make_service_mock()
    watchlist = CoinWatchlist(service, fetcher=fetcher)

    assert await watchlist.load(per_page=2) is True

    fetcher.get_markets.assert_called_once_with(2)
    service.start_updates.assert_called_once_with(["bitcoin", "ethereum"])
    assert watchlist.coins == sample_coins
    assert watchlist.filtered == sample_coins
    assert watchlist.error is None


@pytest.mark.asyncio
async def test_failed_bootstrap_sets_retryable_error_and_does_not_start():
    fetcher = MagicMock(spec=CoinGeckoMarketFetcher)
    fetcher.get_markets.side_effect = PriceFetchError("HTTP 503", status_code=503)
    service = make_service_mock()
    watchlist = CoinWatchlist(service, fetcher=fetcher)

    assert await watchlist.load() is False

    assert watchlist.error == BOOTSTRAP_ERROR_MESSAGE
    service.start_updates.assert_not_called()


def test_attach_once_and_detach_unsubscribes_then_stops():
    service = make_service_mock()
    unsubscribe = service.subscribe.return_value
    watchlist = CoinWatchlist(service, fetcher=MagicMock(spec=CoinGeckoMarketFetcher))

    watchlist.attach()
    watchlist.attach()
    watchlist.detach()

    service.subscribe.assert_called_once_with(watchlist.apply_updates)
    unsubscribe.assert_called_once_with()
    service.stop_updates.assert_called_once_with()


def test_apply_updates_refreshes_filtered_view_too(sample_coins, bitcoin_update):
    watchlist = CoinWatchlist(make_service_mock(), fetcher=MagicMock(spec=CoinGeckoMarketFetcher))
    watchlist.coins = list(sample_coins)
    watchlist.filter_by("bitcoin")

    watchlist.apply_updates([bitcoin_update])

    assert [coin.id for coin in watchlist.filtered] == ["bitcoin"]
    assert watchlist.filtered[0].current_price == 50000.0
    assert watchlist.get("bitcoin").current_price == 50000.0


def test_filter_by_unknown_or_none_shows_everything(sample_coins):
    watchlist = CoinWatchlist(make_service_mock(), fetcher=MagicMock(spec=CoinGeckoMarketFetcher))
    watchlist.coins = list(sample_coins)

    assert watchlist.filter_by("dogecoin") == sample_coins
    assert watchlist.filter_by(None) == sample_coins


def test_top_movers_ranks_by_absolute_change(sample_coins):
    watchlist = CoinWatchlist(make_service_mock(), fetcher=MagicMock(spec=CoinGeckoMarketFetcher))
    watchlist.coins = list(sample_coins)
    watchlist.apply_updates([PriceUpdate(id="ethereum", current_price=2800.0, price_change_percentage_24h=-7.0)])

    assert [coin.id for coin in watchlist.top_movers(1)] == ["ethereum"]


@pytest.mark.asyncio
async def test_end_to_end_partial_response_updates_only_returned_coin(make_service, mock_fetcher, slow_policy, sample_coins):
    mock_fetcher.get_markets.return_value = sample_coins
    service = make_service(mock_fetcher, slow_policy)
    watchlist = CoinWatchlist(service)
    broadcasts = []
    service.subscribe(broadcasts.append)
    watchlist.attach()

    assert await watchlist.load()
    assert await wait_until(lambda: broadcasts)

    assert len(broadcasts) == 1
    assert len(broadcasts[0]) == 1
    mock_fetcher.get_prices.assert_called_once_with(["bitcoin", "ethereum"])
    assert watchlist.get("bitcoin").current_price == 50000
    assert watchlist.get("ethereum") == sample_coins[1]

    watchlist.detach()
    assert not service.is_running
    assert len(service.broadcaster) == 0


@pytest.mark.parametrize("term, expected", [
    ("bit", ["bitcoin"]),
    ("ETH", ["ethereum"]),
    ("  Ether ", ["ethereum"]),
    ("c", ["bitcoin"]),
    ("dogecoin", []),
])
def test_search_matches_name_or_symbol_ignoring_case(sample_coins, term, expected):
    watchlist = CoinWatchlist(make_service_mock(), fetcher=MagicMock(spec=CoinGeckoMarketFetcher))
    watchlist.coins = list(sample_coins)

    assert [coin.id for coin in watchlist.search(term)] == expected


@pytest.mark.parametrize("term", ["", "   ", None])
def test_search_with_blank_term_returns_nothing(sample_coins, term):
    watchlist = CoinWatchlist(make_service_mock(), fetcher=MagicMock(spec=CoinGeckoMarketFetcher))
    watchlist.coins = list(sample_coins)

    assert watchlist.search(term) == []
    assert watchlist.filtered == []
