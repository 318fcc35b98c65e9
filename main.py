"""
Main entry point for the price dashboard.

Loads the top coins by market cap, keeps their prices fresh by polling, logs
the biggest movers after each refresh and checks stored price alerts.
"""

import asyncio
import logging
import os
import signal # For graceful shutdown

from dotenv import load_dotenv
# Load .env before importing settings so overrides apply
dotenv_path = os.path.join(os.path.dirname(__file__), '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)
    print(f"Loaded environment variables from: {dotenv_path}")
else:
    print("Warning: .env file not found. Relying on system environment variables.")

from config import settings
from pricesync.api import CoinGeckoMarketFetcher
from pricesync.services import CoinWatchlist, PollingPolicy, PriceUpdateService, open_portfolio_store
from pricesync.utils import setup_logging

setup_logging(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

logger = logging.getLogger(__name__)

# Created inside main_runner so it binds to the running loop
shutdown_event = None

def handle_shutdown_signal(sig, frame):
    """Sets the shutdown event when a signal is received."""
    logger.warning(f"Received signal {sig}. Initiating graceful shutdown...")
    if shutdown_event is not None:
        shutdown_event.set()


async def main_runner():
    """Main asynchronous execution function."""
    global shutdown_event
    shutdown_event = asyncio.Event()

    fetcher = CoinGeckoMarketFetcher()
    service = PriceUpdateService(fetcher=fetcher, policy=PollingPolicy())
    watchlist = CoinWatchlist(service)
    portfolio = open_portfolio_store()

    def report(updates):
        for coin in watchlist.top_movers(3):
            logger.info(f"  {coin.symbol.upper():<6} ${coin.current_price:,.2f} "
                        f"({coin.price_change_percentage_24h:+.2f}%)")
        for alert in portfolio.triggered_alerts(updates):
            direction = "above" if alert.is_above else "below"
            logger.warning(f"ALERT: {alert.coin_id.upper()} is {direction} ${alert.target_price:,.2f}")
        if portfolio.portfolio:
            metrics = portfolio.analytics({coin.id: coin.current_price for coin in watchlist.coins})
            logger.info(f"Portfolio value ${metrics['total_value']:,.2f} "
                        f"({metrics['percentage_return']:+.2f}% on ${metrics['total_cost']:,.2f})")

    try:
        logger.info(f"Loading top {settings.BOOTSTRAP_PER_PAGE} coins...")
        if not await watchlist.load(settings.BOOTSTRAP_PER_PAGE):
            logger.critical(watchlist.error)
            return

        # Subscribe after load: the watchlist merges, the reporter reads the merged result
        watchlist.attach()
        service.subscribe(report)
        logger.info(f"Tracking {len(watchlist.coins)} coins. Press Ctrl+C to stop.")

        await shutdown_event.wait()

    except asyncio.CancelledError:
        logger.info("Main runner task cancelled.")
    except Exception:
        logger.exception("Unhandled exception in main_runner:")
    finally:
        logger.info("Initiating shutdown...")
        watchlist.detach()
        await service.close()
        logger.info(f"Shutdown complete. Cycles completed: {service.cycles_completed}, "
                    f"failed: {service.cycles_failed}.")


if __name__ == "__main__":
    signal.signal(signal.SIGINT, handle_shutdown_signal)  # Handle Ctrl+C
    signal.signal(signal.SIGTERM, handle_shutdown_signal) # Handle kill/systemd stop

    logger.info("Starting price dashboard...")
    try:
        asyncio.run(main_runner())
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt caught in __main__.")
    except Exception as e:
        logger.critical(f"Critical error preventing startup: {e}", exc_info=True)

    logger.info("Price dashboard finished.")
