"""
Data classes for user-entered portfolio positions and price alerts.

Both are persisted as plain dicts under camelCase keys so that the stored
document stays readable by the dashboard front end.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class PortfolioItem:
    """
    A single holding.

    Attributes:
        id (str): Store-generated identifier.
        coin (str): Coin symbol or identifier, stored upper-cased.
        amount (float): Quantity held.
        purchase_price (float): Price paid per unit.
    """
    id: str
    coin: str
    amount: float
    purchase_price: float

    @property
    def cost_basis(self) -> float:
        return self.amount * self.purchase_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "coin": self.coin,
            "amount": self.amount,
            "purchasePrice": self.purchase_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortfolioItem":
        return cls(
            id=str(data["id"]),
            coin=str(data["coin"]),
            amount=float(data["amount"]),
            purchase_price=float(data["purchasePrice"]),
        )


@dataclass(frozen=True)
class PriceAlert:
    """
    A price threshold on one coin.

    Attributes:
        id (str): Store-generated identifier.
        coin_id (str): CoinGecko identifier, stored lower-cased.
        target_price (float): Threshold in the quote currency.
        is_above (bool): True to fire when the price goes above the target,
            False to fire when it goes below.
    """
    id: str
    coin_id: str
    target_price: float
    is_above: bool

    def is_triggered(self, price: float) -> bool:
        if self.is_above:
            return price > self.target_price
        return price < self.target_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "coinId": self.coin_id,
            "targetPrice": self.target_price,
            "isAbove": self.is_above,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceAlert":
        return cls(
            id=str(data["id"]),
            coin_id=str(data["coinId"]),
            target_price=float(data["targetPrice"]),
            is_above=bool(data["isAbove"]),
        )
