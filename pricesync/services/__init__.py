"""
Core application services: price synchronization, broadcasting to observers,
and the dashboard-side collaborators that consume the broadcasts.
"""
from .broadcaster import PriceBroadcaster
from .synchronizer import PollingPolicy, PriceUpdateService
from .watchlist import CoinWatchlist, merge_price_updates
from .portfolio_store import JsonKeyValueStore, PortfolioStore, open_portfolio_store

__all__ = [
    "PriceBroadcaster",
    "PollingPolicy",
    "PriceUpdateService",
    "CoinWatchlist",
    "merge_price_updates",
    "JsonKeyValueStore",
    "PortfolioStore",
    "open_portfolio_store",
]
