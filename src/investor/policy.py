"""
Reference trading strategy: trade without thinking too hard.

- sell when holding more than one unit
- sell when someone bids above the reference price
- buy (up to one unit) when someone asks below the reference price
- when the market drifts away from the reference price, move the reference halfway towards it
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from src.domain.models import TRADE_TYPE_BUY, TRADE_TYPE_SELL, Order
from src.investor.core import InvestorView

CANCEL = "cancel"
PLACE = "place"
REPRICE = "reprice"


@dataclass(frozen=True)
class Decision:
    kind: str
    order_type: str | None = None
    amount: int = 0
    price: int = 0
    order: Order | None = None


@dataclass
class RandomPolicy:
    unit_amount: int
    unit_price: int
    order_cap: int = 5

    def __post_init__(self) -> None:
        if self.unit_amount <= 0:
            raise ValueError("unit_amount must be > 0")
        if self.unit_price <= 0:
            raise ValueError("unit_price must be > 0")
        if self.order_cap <= 0:
            raise ValueError("order_cap must be > 0")

    def _amount(self, rng: random.Random, upper: int) -> int:
        return min(rng.randint(1, upper), self.unit_amount)

    def decide(self, view: InvestorView, rng: random.Random) -> Decision | None:
        """Pick at most one action for this tick. Returns None when there is nothing to do."""
        open_orders = view.open_orders
        credit = view.available_credit
        inventory = view.available_inventory
        lowest = view.lowest_sell_price
        highest = view.highest_buy_price

        if len(open_orders) >= self.order_cap:
            # Release the resting order furthest from the opposite side of the book.
            target: Order | None = None
            margin = 0
            for order in open_orders:
                if order.type == TRADE_TYPE_SELL:
                    m = order.price - highest
                else:
                    m = lowest - order.price
                if target is None or margin < m:
                    target = order
                    margin = m
            return Decision(CANCEL, order=target)

        if not open_orders and inventory > self.unit_amount:
            return Decision(PLACE, TRADE_TYPE_SELL, self.unit_amount, self.unit_price)

        if not open_orders:
            return Decision(PLACE, TRADE_TYPE_BUY, self.unit_amount, self.unit_price)

        if 0 < lowest < self.unit_price and lowest <= credit:
            return Decision(PLACE, TRADE_TYPE_BUY, self._amount(rng, credit // lowest), lowest)

        if highest > 0 and highest > self.unit_price and inventory > 0:
            return Decision(PLACE, TRADE_TYPE_SELL, self._amount(rng, inventory), highest)

        if inventory > self.unit_amount:
            # Holding plenty; concede a little on price.
            price = (lowest + self.unit_price) // 2 if lowest else self.unit_price
            return Decision(PLACE, TRADE_TYPE_SELL, self._amount(rng, self.unit_amount), price)

        if credit > (highest + self.unit_price) // 2:
            price = (highest + self.unit_price) // 2 if highest else self.unit_price
            return Decision(PLACE, TRADE_TYPE_BUY, self._amount(rng, self.unit_amount), price)

        if view.latest_trade_price > 0:
            return Decision(REPRICE, price=(view.latest_trade_price + self.unit_price) // 2)
        return None
