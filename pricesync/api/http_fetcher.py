"""
Module for fetching public market data via the CoinGecko HTTP REST API.
"""

import requests
import logging
from typing import List, Dict, Any, Optional, Sequence

from config import settings
from pricesync.api.exceptions import PriceFetchError, MalformedResponseError
from pricesync.models import PriceUpdate, Coin

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class CoinGeckoMarketFetcher:
    """
    Fetches current prices and market listings from CoinGecko's
    `/coins/markets` endpoint.

    Every call either returns fully normalized records or raises
    PriceFetchError (MalformedResponseError for unexpected bodies); partial
    results are never returned.

    Args:
        api_url (str): Base URL of the CoinGecko v3 API.
        vs_currency (str): Quote currency for all prices (e.g., 'usd').
        timeout (float): Per-request timeout in seconds.
        session (Optional[requests.Session]): Session to reuse. One is created if omitted.
    """
    MARKETS_PATH = "/coins/markets"

    def __init__(self,
                 api_url: str = settings.COINGECKO_API_URL,
                 vs_currency: str = settings.VS_CURRENCY,
                 timeout: float = settings.REQUEST_TIMEOUT_SECONDS,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip('/')
        self.vs_currency = vs_currency
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_prices(self, ids: Sequence[str]) -> List[PriceUpdate]:
        """
        Fetches current price and 24h change for every id in one batched request.

        Ids the provider doesn't know are simply absent from the result.

        Args:
            ids (Sequence[str]): CoinGecko coin identifiers.

        Returns:
            List[PriceUpdate]: One record per coin returned, in response order.

        Raises:
            PriceFetchError: On network errors or non-2xx responses.
            MalformedResponseError: If the body isn't a list of coin objects.
        """
        if not ids:
            return []
        params = {
            "vs_currency": self.vs_currency,
            "ids": ",".join(ids),
            "order": settings.MARKETS_ORDER,
            "sparkline": "false",
        }
        payload = self._get_json(self.MARKETS_PATH, params)
        updates = self.parse_price_updates(payload)
        logger.debug(f"Fetched prices for {len(updates)}/{len(ids)} requested coins.")
        return updates

    def get_markets(self, per_page: int = settings.BOOTSTRAP_PER_PAGE, page: int = 1) -> List[Coin]:
        """
        Fetches the top coins by market cap, used to seed the dashboard.

        Args:
            per_page (int): Number of coins to return (CoinGecko caps this at 250).
            page (int): 1-based page number.

        Returns:
            List[Coin]: Coins in provider order.

        Raises:
            PriceFetchError: On network errors or non-2xx responses.
            MalformedResponseError: If the body isn't a list of coin objects.
        """
        params = {
            "vs_currency": self.vs_currency,
            "order": settings.MARKETS_ORDER,
            "per_page": per_page,
            "page": page,
            "sparkline": "false",
        }
        payload = self._get_json(self.MARKETS_PATH, params)
        coins = self.parse_coins(payload)
        logger.info(f"Fetched {len(coins)} coins from markets listing (page {page}).")
        return coins

    def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.api_url}{path}"
        logger.debug(f"GET {url} with params: {params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise PriceFetchError(f"HTTP error from {url}: {e}", status_code=status) from e
        except requests.exceptions.RequestException as e:
            raise PriceFetchError(f"Request to {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response from {url} is not valid JSON: {e}") from e

    @staticmethod
    def _require_list(payload: Any) -> List[Dict[str, Any]]:
        if not isinstance(payload, list):
            raise MalformedResponseError(f"Expected a list of coins, got {type(payload).__name__}.")
        for entry in payload:
            if not isinstance(entry, dict):
                raise MalformedResponseError(f"Expected coin objects, got {type(entry).__name__}.")
            if (not isinstance(entry.get('id'), str) or 'current_price' not in entry
                    or 'price_change_percentage_24h' not in entry):
                raise MalformedResponseError(
                    f"Coin object missing 'id', 'current_price' or 'price_change_percentage_24h': {entry}")
        return payload

    @staticmethod
    def parse_price_updates(payload: Any) -> List[PriceUpdate]:
        """
        Normalizes a `/coins/markets` body into PriceUpdate records.

        Every entry must carry 'id', 'current_price' and
        'price_change_percentage_24h'. A null change passes through as None;
        coins reported with a null price are skipped (CoinGecko does this for
        delisted or inactive coins). Any other deviation from the expected
        shape raises MalformedResponseError.
        """
        updates = []
        for entry in CoinGeckoMarketFetcher._require_list(payload):
            price = entry['current_price']
            change = entry['price_change_percentage_24h']
            if price is None:
                logger.warning(f"Null price reported for {entry['id']}; skipping it this cycle.")
                continue
            if not _is_number(price) or (change is not None and not _is_number(change)):
                raise MalformedResponseError(f"Non-numeric price fields for {entry['id']}: {price!r}, {change!r}")
            updates.append(PriceUpdate(
                id=entry['id'],
                current_price=float(price),
                price_change_percentage_24h=float(change) if change is not None else None,
            ))
        return updates

    @staticmethod
    def parse_coins(payload: Any) -> List[Coin]:
        """Normalizes a `/coins/markets` body into dashboard Coin rows."""
        coins = []
        for entry in CoinGeckoMarketFetcher._require_list(payload):
            try:
                market_cap = entry.get('market_cap')
                change = entry.get('price_change_percentage_24h')
                coins.append(Coin(
                    id=entry['id'],
                    symbol=str(entry.get('symbol', '')),
                    name=str(entry.get('name', entry['id'])),
                    current_price=float(entry['current_price']) if entry['current_price'] is not None else 0.0,
                    price_change_percentage_24h=float(change) if change is not None else None,
                    market_cap=float(market_cap) if market_cap is not None else None,
                    image=entry.get('image'),
                ))
            except (TypeError, ValueError) as e:
                raise MalformedResponseError(f"Invalid field types for coin {entry['id']}: {e}") from e
        return coins
