"""
Market-data provider interaction package.

Provides the CoinGecko HTTP fetcher and the exceptions it raises.
"""

from .exceptions import PriceFetchError, MalformedResponseError
from .http_fetcher import CoinGeckoMarketFetcher

__all__ = [
    "PriceFetchError",
    "MalformedResponseError",
    "CoinGeckoMarketFetcher",
]
