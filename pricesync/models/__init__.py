"""
Data models for price records, dashboard coins and portfolio entries.
"""
from .price import PriceUpdate, Coin
from .portfolio import PortfolioItem, PriceAlert

__all__ = [
    "PriceUpdate",
    "Coin",
    "PortfolioItem",
    "PriceAlert",
]
