"""
pricesync: keeps a tracked set of coin prices fresh by polling CoinGecko and
broadcasts each cycle's results to registered observers.
"""

__version__ = "0.1.0"
