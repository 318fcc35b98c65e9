"""
Data classes for the records exchanged between the market-data fetcher,
the synchronizer and its observers.
"""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class PriceUpdate:
    """
    Normalized result for one coin from a single fetch cycle.

    Instances are created fresh each cycle and shared by reference with every
    observer, so they are frozen.

    Attributes:
        id (str): CoinGecko coin identifier (e.g., 'bitcoin').
        current_price (float): Latest price in the configured quote currency.
        price_change_percentage_24h (Optional[float]): 24h change in percent.
            CoinGecko reports null for some thinly traded coins.
    """
    id: str
    current_price: float
    price_change_percentage_24h: Optional[float]


@dataclass(frozen=True)
class Coin:
    """
    A coin row as shown on the dashboard, seeded by the bootstrap markets call
    and refreshed in place from PriceUpdate records.
    """
    id: str
    symbol: str
    name: str
    current_price: float
    price_change_percentage_24h: Optional[float]
    market_cap: Optional[float] = None
    image: Optional[str] = None

    def with_update(self, update: PriceUpdate) -> "Coin":
        """Returns a copy carrying the price fields of `update`."""
        return replace(
            self,
            current_price=update.current_price,
            price_change_percentage_24h=update.price_change_percentage_24h,
        )
