"""
Persistence of user-entered portfolio positions and price alerts.

The backing store is a single JSON document keyed by fixed names, rewritten
synchronously whenever a collection changes and read once at start-up.
"""

import json
import logging
import os
import time
from typing import Any, Dict, Iterable, List, Optional

from config import settings
from pricesync.models import PortfolioItem, PriceAlert, PriceUpdate

logger = logging.getLogger(__name__)

PORTFOLIO_KEY = "portfolio"
ALERTS_KEY = "priceAlerts"


class JsonKeyValueStore:
    """
    Minimal durable key-value store backed by one JSON file.

    Args:
        path (str): File location. Created on first write.
    """
    def __init__(self, path: str):
        self.path = path
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read store at {self.path}: {e}. Starting empty.")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Store at {self.path} is not a JSON object. Starting empty.")
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Writes the whole document with `key` set to `value`.

        The in-memory copy only changes once the file has been replaced, so a
        failed write (OSError, or TypeError for unserializable values) leaves
        both untouched and no temporary file behind.
        """
        new_data = dict(self._data)
        new_data[key] = value
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(new_data, f, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to persist key '{key}' to {self.path}: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        self._data = new_data
        logger.debug(f"Persisted key '{key}' to {self.path}.")


class PortfolioStore:
    """
    Portfolio positions and price alerts, persisted through a key-value store.

    Entries that fail to parse on load are logged and dropped.
    """
    def __init__(self, store: JsonKeyValueStore):
        self.store = store
        self.portfolio: List[PortfolioItem] = self._read(PORTFOLIO_KEY, PortfolioItem.from_dict)
        self.alerts: List[PriceAlert] = self._read(ALERTS_KEY, PriceAlert.from_dict)
        self._last_id = 0
        logger.info(f"Loaded {len(self.portfolio)} portfolio item(s) and {len(self.alerts)} price alert(s).")

    def _read(self, key, factory) -> list:
        raw = self.store.get(key, [])
        if not isinstance(raw, list):
            logger.warning(f"Stored '{key}' is not a list; ignoring it.")
            return []
        items = []
        for entry in raw:
            try:
                items.append(factory(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid '{key}' entry {entry!r}: {e}")
        return items

    def _next_id(self) -> str:
        # Millisecond timestamps, nudged forward when two entries land in the same ms
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    # In-memory lists change only after the store write succeeds
    def _save_portfolio(self, items: List[PortfolioItem]) -> None:
        self.store.set(PORTFOLIO_KEY, [item.to_dict() for item in items])
        self.portfolio = items

    def _save_alerts(self, alerts: List[PriceAlert]) -> None:
        self.store.set(ALERTS_KEY, [alert.to_dict() for alert in alerts])
        self.alerts = alerts

    # --- Portfolio ---

    def add_portfolio_item(self, coin: str, amount: float, purchase_price: float) -> PortfolioItem:
        if not coin:
            raise ValueError("coin must not be empty.")
        if amount <= 0 or purchase_price <= 0:
            raise ValueError("amount and purchase_price must be positive.")
        item = PortfolioItem(id=self._next_id(), coin=coin.upper(),
                             amount=float(amount), purchase_price=float(purchase_price))
        self._save_portfolio(self.portfolio + [item])
        return item

    def remove_portfolio_item(self, item_id: str) -> bool:
        remaining = [item for item in self.portfolio if item.id != item_id]
        if len(remaining) == len(self.portfolio):
            return False
        self._save_portfolio(remaining)
        return True

    def total_cost_basis(self) -> float:
        return sum(item.cost_basis for item in self.portfolio)

    def analytics(self, prices: Dict[str, float]) -> Dict[str, Any]:
        """
        Values the portfolio at `prices` (keyed by lower-cased coin id).

        Positions without a price are left out of every figure.

        Returns:
            Dict[str, Any]: total_value, total_cost, total_return,
                percentage_return and allocation (coin -> current value).
        """
        total_value = 0.0
        total_cost = 0.0
        allocation: Dict[str, float] = {}
        for item in self.portfolio:
            price = prices.get(item.coin.lower())
            if price is None:
                continue
            value = item.amount * price
            total_value += value
            total_cost += item.cost_basis
            allocation[item.coin] = allocation.get(item.coin, 0.0) + value

        total_return = total_value - total_cost
        percentage_return = (total_return / total_cost) * 100 if total_cost > 0 else 0.0
        return {
            "total_value": total_value,
            "total_cost": total_cost,
            "total_return": total_return,
            "percentage_return": percentage_return,
            "allocation": allocation,
        }

    # --- Alerts ---

    def add_price_alert(self, coin_id: str, target_price: float, is_above: bool = True) -> PriceAlert:
        if not coin_id:
            raise ValueError("coin_id must not be empty.")
        if target_price <= 0:
            raise ValueError("target_price must be positive.")
        alert = PriceAlert(id=self._next_id(), coin_id=coin_id.lower(),
                           target_price=float(target_price), is_above=bool(is_above))
        self._save_alerts(self.alerts + [alert])
        return alert

    def remove_price_alert(self, alert_id: str) -> bool:
        remaining = [alert for alert in self.alerts if alert.id != alert_id]
        if len(remaining) == len(self.alerts):
            return False
        self._save_alerts(remaining)
        return True

    def triggered_alerts(self, updates: Iterable[PriceUpdate]) -> List[PriceAlert]:
        """Alerts whose coin is past its target in the requested direction."""
        latest: Dict[str, float] = {update.id: update.current_price for update in updates}
        return [alert for alert in self.alerts
                if alert.coin_id in latest and alert.is_triggered(latest[alert.coin_id])]


def open_portfolio_store(path: Optional[str] = None) -> PortfolioStore:
    """Opens the store at `path`, defaulting to the configured location."""
    if path is None:
        path = settings.PORTFOLIO_STORE_PATH
    return PortfolioStore(JsonKeyValueStore(path))
