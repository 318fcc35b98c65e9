"""
Dashboard-side coin list that is seeded once from the markets listing and then
kept current from the synchronizer's broadcasts.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from config import settings
from pricesync.api import CoinGeckoMarketFetcher, PriceFetchError
from pricesync.models import Coin, PriceUpdate
from pricesync.services.synchronizer import PriceUpdateService

logger = logging.getLogger(__name__)

BOOTSTRAP_ERROR_MESSAGE = "Failed to load cryptocurrency data. Please try again later."


def merge_price_updates(coins: Sequence[Coin], updates: Sequence[PriceUpdate]) -> List[Coin]:
    """
    Returns a new list with the price fields of matching coins replaced.

    Updates for coins not in `coins` are ignored; coins with no update keep
    their last known values. Applying the same updates twice gives the same list.
    """
    by_id = {update.id: update for update in updates}
    return [coin.with_update(by_id[coin.id]) if coin.id in by_id else coin for coin in coins]


class CoinWatchlist:
    """
    Holds the displayed coins and keeps them in sync with a PriceUpdateService.

    Typical use: `await load()`, `attach()`, then `detach()` on teardown.

    Attributes:
        coins (List[Coin]): Every coin loaded by the bootstrap call.
        filtered (List[Coin]): The subset currently shown (see `filter_by`).
        error (Optional[str]): User-facing message if the bootstrap failed.
    """
    def __init__(self, service: PriceUpdateService, fetcher: Optional[CoinGeckoMarketFetcher] = None):
        self.service = service
        self.fetcher = fetcher or service.fetcher
        self.coins: List[Coin] = []
        self.filtered: List[Coin] = []
        self.error: Optional[str] = None
        self._selected_id: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def load(self, per_page: int = settings.BOOTSTRAP_PER_PAGE) -> bool:
        """
        Fetches the initial coin listing and starts price updates for it.

        Returns:
            bool: False if the listing couldn't be fetched; `error` is set then.
        """
        self.error = None
        try:
            coins = await asyncio.to_thread(self.fetcher.get_markets, per_page)
        except PriceFetchError as e:
            logger.error(f"Error fetching coins: {e}")
            self.error = BOOTSTRAP_ERROR_MESSAGE
            return False

        self.coins = list(coins)
        self._apply_filter()
        self.service.start_updates([coin.id for coin in self.coins])
        return True

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.service.subscribe(self.apply_updates)

    def detach(self) -> None:
        """Unsubscribes and stops the service so no timer or callback outlives the view."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.service.stop_updates()

    def apply_updates(self, updates: List[PriceUpdate]) -> None:
        self.coins = merge_price_updates(self.coins, updates)
        self.filtered = merge_price_updates(self.filtered, updates)

    def filter_by(self, coin_id: Optional[str]) -> List[Coin]:
        """Shows only `coin_id`, or everything if it's None or not loaded."""
        self._selected_id = coin_id
        self._apply_filter()
        return self.filtered

    def get(self, coin_id: str) -> Optional[Coin]:
        return next((coin for coin in self.coins if coin.id == coin_id), None)

    def search(self, term: str) -> List[Coin]:
        """
        Coins whose name or symbol contains `term`, ignoring case.

        A blank term matches nothing.
        """
        needle = (term or "").strip().lower()
        if not needle:
            return []
        return [coin for coin in self.coins
                if needle in coin.name.lower() or needle in coin.symbol.lower()]

    def top_movers(self, limit: int = 3) -> List[Coin]:
        """Coins with the largest absolute 24h change, biggest first."""
        ranked = [coin for coin in self.coins if coin.price_change_percentage_24h is not None]
        ranked.sort(key=lambda coin: abs(coin.price_change_percentage_24h), reverse=True)
        return ranked[:limit]

    def _apply_filter(self) -> None:
        if self._selected_id is None:
            self.filtered = list(self.coins)
            return
        matches = [coin for coin in self.coins if coin.id == self._selected_id]
        self.filtered = matches if matches else list(self.coins)
