from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

TRADE_TYPE_BUY = "buy"
TRADE_TYPE_SELL = "sell"


def _parse_time(v: Any) -> datetime | None:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v
    s = str(v).strip()
    # Normalise common ISO Z suffix
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


@dataclass(frozen=True)
class Trade:
    id: int
    amount: int
    price: int
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Trade:
        return cls(
            id=int(d.get("id") or 0),
            amount=int(d.get("amount") or 0),
            price=int(d.get("price") or 0),
            created_at=_parse_time(d.get("created_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "amount": int(self.amount),
            "price": int(self.price),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Order:
    """
    An order as the investor tracks it.

    Local copies are overwritten with the exchange's view on every reconciliation,
    so this stays mutable (unlike the other rows here).
    """

    id: int
    type: str
    amount: int
    price: int
    created_at: datetime | None = None
    closed_at: datetime | None = None
    trade: Trade | None = None

    @property
    def is_settled(self) -> bool:
        return self.trade is not None

    @property
    def is_removed(self) -> bool:
        """Closed without a trade: cancelled by us, or dropped by the exchange."""
        return self.closed_at is not None and self.trade is None

    @property
    def is_open(self) -> bool:
        return not self.is_settled and not self.is_removed

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Order:
        trade = d.get("trade")
        return cls(
            id=int(d.get("id") or 0),
            type=str(d.get("type") or ""),
            amount=int(d.get("amount") or 0),
            price=int(d.get("price") or 0),
            created_at=_parse_time(d.get("created_at")),
            closed_at=_parse_time(d.get("closed_at")),
            trade=Trade.from_dict(trade) if isinstance(trade, dict) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "type": self.type,
            "amount": int(self.amount),
            "price": int(self.price),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "trade": self.trade.to_dict() if self.trade else None,
        }


@dataclass(frozen=True)
class Candle:
    time: datetime | None
    open: int
    close: int
    high: int
    low: int

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Candle:
        return cls(
            time=_parse_time(d.get("time")),
            open=int(d.get("open") or 0),
            close=int(d.get("close") or 0),
            high=int(d.get("high") or 0),
            low=int(d.get("low") or 0),
        )


@dataclass(frozen=True)
class InfoResult:
    cursor: int
    lowest_sell_price: int = 0
    highest_buy_price: int = 0
    chart_by_hour: list[Candle] = field(default_factory=list)
    traded_orders: list[Order] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> InfoResult:
        return cls(
            cursor=int(d.get("cursor") or 0),
            lowest_sell_price=int(d.get("lowest_sell_price") or 0),
            highest_buy_price=int(d.get("highest_buy_price") or 0),
            chart_by_hour=[Candle.from_dict(c) for c in (d.get("chart_by_hour") or [])],
            traded_orders=[Order.from_dict(o) for o in (d.get("traded_orders") or [])],
        )
