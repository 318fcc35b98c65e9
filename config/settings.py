"""
Configuration settings for the price synchronizer.

Loads overrides from environment variables (optionally via a .env file in the
project root) and defines application constants.
"""

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Load environment variables from .env file ---
# Project root is one level above config/
current_file_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_file_dir, ".."))
dotenv_path = os.path.join(project_root, ".env")

if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)
else:
    logger.warning(f".env file not found at expected path: {dotenv_path}")


# --- Market Data Provider ---
COINGECKO_API_URL = os.getenv("COINGECKO_API_URL", "https://api.coingecko.com/api/v3")
# Quote currency for every price request
VS_CURRENCY = os.getenv("VS_CURRENCY", "usd").lower()
# Ordering hint passed to /coins/markets
MARKETS_ORDER = os.getenv("MARKETS_ORDER", "market_cap_desc")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", 10.0))

# --- Polling Policy ---
# Seconds between fetch cycles. Failed cycles are retried on the next tick only.
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", 30.0))
# When true, a tick is skipped while the previous fetch is still in flight
SKIP_OVERLAPPING_TICKS = os.getenv("SKIP_OVERLAPPING_TICKS", "True").lower() == "true"

# --- Dashboard ---
# Number of coins pulled by the initial markets call
BOOTSTRAP_PER_PAGE = int(os.getenv("BOOTSTRAP_PER_PAGE", 100))
PORTFOLIO_STORE_PATH = os.getenv("PORTFOLIO_STORE_PATH", os.path.join(project_root, "portfolio_store.json"))

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Validation ---
if POLL_INTERVAL_SECONDS <= 0:
    raise ValueError("POLL_INTERVAL_SECONDS must be positive.")

if REQUEST_TIMEOUT_SECONDS <= 0:
    raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive.")

if BOOTSTRAP_PER_PAGE <= 0:
    logger.warning(f"BOOTSTRAP_PER_PAGE={BOOTSTRAP_PER_PAGE} is not positive. Falling back to 100.")
    BOOTSTRAP_PER_PAGE = 100

if not isinstance(logging.getLevelName(LOG_LEVEL), int):
    logger.warning(f"LOG_LEVEL={LOG_LEVEL} is not a logging level name. Falling back to INFO.")
    LOG_LEVEL = "INFO"

logger.info("Configuration loaded:")
logger.info(f"  COINGECKO_API_URL: {COINGECKO_API_URL}")
logger.info(f"  VS_CURRENCY: {VS_CURRENCY}")
logger.info(f"  MARKETS_ORDER: {MARKETS_ORDER}")
logger.info(f"  REQUEST_TIMEOUT_SECONDS: {REQUEST_TIMEOUT_SECONDS}")
logger.info(f"  POLL_INTERVAL_SECONDS: {POLL_INTERVAL_SECONDS}")
logger.info(f"  SKIP_OVERLAPPING_TICKS: {SKIP_OVERLAPPING_TICKS}")
logger.info(f"  BOOTSTRAP_PER_PAGE: {BOOTSTRAP_PER_PAGE}")
logger.info(f"  PORTFOLIO_STORE_PATH: {PORTFOLIO_STORE_PATH}")
logger.info(f"  LOG_LEVEL: {LOG_LEVEL}")
