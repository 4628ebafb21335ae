from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime

import pytest

from src.bench.settings import InvestorConfig
from src.domain.errors import INSUFFICIENT_CREDIT_MESSAGE, ExchangeError
from src.domain.models import InfoResult, Order, Trade
from src.investor.random_investor import RandomInvestor


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeExchange:
    """In-memory exchange for one investor. Records every call it receives."""

    def __init__(self, bank_id: str = "bank-1"):
        self.bank_id = bank_id
        self.calls: list[str] = []
        self.registered = False
        self.insufficient_credit = False
        self.info_result = InfoResult(cursor=0)
        self.fail: dict[str, Exception] = {}
        self._orders: list[Order] = []
        self._next_id = 1
        self._retired = False

    def _call(self, name: str) -> None:
        self.calls.append(name)
        exc = self.fail.pop(name, None)
        if exc is not None:
            raise exc

    # ----- ExchangePort -----

    def is_retired(self) -> bool:
        return self._retired

    def retire(self) -> None:
        self._retired = True

    def top(self) -> None:
        self._call("top")

    def signup(self) -> None:
        self._call("signup")
        if self.registered:
            raise ExchangeError(409, "bank_id already exists")
        self.registered = True

    def signin(self) -> None:
        self._call("signin")

    def info(self, cursor: int) -> InfoResult:
        self._call("info")
        return self.info_result

    def get_orders(self) -> list[Order]:
        self._call("get_orders")
        return [replace(o) for o in self._orders]

    def add_order(self, order_type: str, amount: int, price: int) -> Order:
        self._call("add_order")
        if self.insufficient_credit and order_type == "buy":
            raise ExchangeError(400, INSUFFICIENT_CREDIT_MESSAGE)
        order = Order(id=self._next_id, type=order_type, amount=amount, price=price, created_at=datetime.now())
        self._next_id += 1
        self._orders.append(order)
        return replace(order)

    def delete_order(self, order_id: int) -> None:
        self._call("delete_order")
        for o in self._orders:
            if o.id == order_id and o.closed_at is None:
                o.closed_at = datetime.now()
                return
        raise ExchangeError(404, "not found")

    # ----- Test helpers -----

    def settle(self, order_id: int, price: int) -> None:
        for o in self._orders:
            if o.id == order_id:
                now = datetime.now()
                o.trade = Trade(id=order_id, amount=o.amount, price=price, created_at=now)
                o.closed_at = now
                return
        raise KeyError(order_id)

    def drop(self, order_id: int) -> None:
        self._orders = [o for o in self._orders if o.id != order_id]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def exchange() -> FakeExchange:
    return FakeExchange()


@pytest.fixture
def investor_config() -> InvestorConfig:
    return InvestorConfig(
        order_cap=5,
        polling_interval_seconds=0.5,
        order_update_interval_seconds=2.0,
        signup_jitter_seconds=0.0,
    )


@pytest.fixture
def make_investor(exchange, clock, investor_config):
    def _make(credit: int = 10000, inventory: int = 0, unit_amount: int = 5, unit_price: int = 100, **kwargs):
        return RandomInvestor(
            kwargs.pop("client", exchange),
            credit=credit,
            inventory=inventory,
            unit_amount=unit_amount,
            unit_price=unit_price,
            config=kwargs.pop("config", investor_config),
            rng=kwargs.pop("rng", random.Random(7)),
            clock=kwargs.pop("clock", clock),
            **kwargs,
        )

    return _make


@pytest.fixture
def exchange_factory():
    return FakeExchange
