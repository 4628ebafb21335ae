"""
Per-investor state and the tasks that act on it.

Each investor owns its orders, balances and market view outright. Three locks
guard it, never nested and never shared with other investors:

- `action_lock`: order placement/cancellation and balance reconciliation
- `polling_lock`: the info poll (market view + cursor)
- `task_lock`: the deferred task queue drained on every tick
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from src.bench.settings import InvestorConfig, ScoreConfig
from src.domain.errors import ConsistencyError, ExchangeError
from src.domain.models import TRADE_TYPE_BUY, TRADE_TYPE_SELL, Order
from src.ports.exchange import ExchangePort
from src.tasks.task import ExecTask, ScoreTask, SerialTask, Task

logger = logging.getLogger(__name__)

# Start chain: top, info, signup, signin, update_orders + one policy task.
START_CAPACITY = 6


@dataclass(frozen=True)
class InvestorView:
    """Read-only snapshot handed to a trading policy."""

    open_orders: tuple[Order, ...]
    available_credit: int
    available_inventory: int
    lowest_sell_price: int
    highest_buy_price: int
    latest_trade_price: int


class InvestorCore:
    def __init__(
        self,
        client: ExchangePort,
        credit: int,
        inventory: int,
        *,
        scoring: ScoreConfig | None = None,
        config: InvestorConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.scoring = scoring or ScoreConfig()
        self.config = config or InvestorConfig()
        self.rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep

        self.default_credit = int(credit)
        self.default_inventory = int(inventory)
        self._credit = int(credit)
        self._inventory = int(inventory)
        self._reserved_credit = 0
        self._reserved_inventory = 0
        self._orders: list[Order] = []

        self._lowest_sell_price = 0
        self._highest_buy_price = 0
        self._latest_trade_price = 0
        self._cursor = 0
        self._next_poll_at = 0.0
        self._last_order_at: float | None = None

        self._signed_in = False
        self._started = False

        self.action_lock = threading.Lock()
        self.polling_lock = threading.Lock()
        self.task_lock = threading.Lock()
        self._task_queue: list[Task] = []

    # ----- Accessors -----

    @property
    def bank_id(self) -> str:
        return self.client.bank_id

    @property
    def credit(self) -> int:
        return self._credit

    @property
    def inventory(self) -> int:
        return self._inventory

    @property
    def reserved_credit(self) -> int:
        return self._reserved_credit

    @property
    def reserved_inventory(self) -> int:
        return self._reserved_inventory

    @property
    def available_credit(self) -> int:
        return self._credit - self._reserved_credit

    @property
    def available_inventory(self) -> int:
        return self._inventory - self._reserved_inventory

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    @property
    def open_orders(self) -> list[Order]:
        return [o for o in self._orders if o.is_open]

    @property
    def lowest_sell_price(self) -> int:
        return self._lowest_sell_price

    @property
    def highest_buy_price(self) -> int:
        return self._highest_buy_price

    @property
    def latest_trade_price(self) -> int:
        return self._latest_trade_price

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def next_poll_at(self) -> float:
        return self._next_poll_at

    @property
    def last_order_at(self) -> float | None:
        return self._last_order_at

    def is_signed_in(self) -> bool:
        return self._signed_in

    def is_started(self) -> bool:
        return self._started

    def is_retired(self) -> bool:
        return self.client.is_retired()

    def now(self) -> float:
        return self._clock()

    def view(self) -> InvestorView:
        """Snapshot for the trading policy. Callers hold `action_lock`."""
        return InvestorView(
            open_orders=tuple(self.open_orders),
            available_credit=self.available_credit,
            available_inventory=self.available_inventory,
            lowest_sell_price=self._lowest_sell_price,
            highest_buy_price=self._highest_buy_price,
            latest_trade_price=self._latest_trade_price,
        )

    # ----- Deferred task queue -----

    def push_next_task(self, task: Task) -> None:
        with self.task_lock:
            self._task_queue.append(task)

    def pending_task_count(self) -> int:
        with self.task_lock:
            return len(self._task_queue)

    # ----- Tasks -----

    def top(self) -> Task:
        return ExecTask(self.client.top, self.scoring.get_top)

    def _jitter(self) -> None:
        if self.config.signup_jitter_seconds > 0:
            self._sleep(self.rng.random() * self.config.signup_jitter_seconds)

    def signup(self) -> Task:
        def _signup() -> int:
            self._jitter()
            with self.action_lock:
                if self._signed_in:
                    return 0
                try:
                    self.client.signup()
                except ExchangeError as e:
                    # Concurrent or repeated runs may have registered this bank id already.
                    if e.is_already_exists:
                        return self.scoring.signup
                    raise
                return self.scoring.signup

        return ScoreTask(_signup)

    def signin(self) -> Task:
        def _signin() -> None:
            self._jitter()
            self.client.signin()
            with self.action_lock:
                self._signed_in = True

        return ExecTask(_signin, self.scoring.signin)

    def info(self) -> Task:
        def _info() -> int:
            with self.polling_lock:
                if self.is_retired():
                    return 0
                if self._clock() < self._next_poll_at:
                    return 0
                info = self.client.info(self._cursor)
                self._next_poll_at = self._clock() + self.config.polling_interval_seconds
                self._lowest_sell_price = info.lowest_sell_price
                self._highest_buy_price = info.highest_buy_price
                self._cursor = info.cursor
                if info.chart_by_hour:
                    self._latest_trade_price = info.chart_by_hour[-1].close
                traded = bool(info.traded_orders)

            # Reconciled on the next tick, outside the polling lock.
            if traded:
                self.push_next_task(self.update_orders())
            return self.scoring.get_info

        return ScoreTask(_info)

    def update_orders(self) -> Task:
        def _update() -> None:
            with self.action_lock:
                self._reconcile(self.client.get_orders())

        return ExecTask(_update, self.scoring.get_orders)

    def _reconcile(self, remote_orders: list[Order]) -> None:
        if self._orders:
            last = self._orders[-1]
            # Buy orders may be cancelled by the exchange at any time, so only a sell is checked.
            if last.type == TRADE_TYPE_SELL and last.is_open:
                if not remote_orders or remote_orders[-1].id != last.id:
                    raise ConsistencyError(f"GET /orders does not reflect the latest sell order {last.id}")

        by_id = {o.id: o for o in remote_orders}
        reserved_credit = reserved_inventory = traded_credit = traded_inventory = 0
        for order in self._orders:
            if order.is_removed:
                continue
            remote = by_id.get(order.id)
            if remote is None:
                if order.type == TRADE_TYPE_SELL:
                    raise ConsistencyError(f"GET /orders is missing sell order {order.id}")
                if order.is_settled:
                    raise ConsistencyError(f"GET /orders is missing settled buy order {order.id}")
                # Unsettled buy orders can be cancelled by the exchange.
                order.closed_at = datetime.now()
                continue

            order.type = remote.type
            order.amount = remote.amount
            order.price = remote.price
            order.created_at = remote.created_at
            order.closed_at = remote.closed_at
            order.trade = remote.trade

            if order.trade is not None:
                if order.type == TRADE_TYPE_SELL:
                    traded_inventory -= order.amount
                    traded_credit += order.amount * order.trade.price
                else:
                    traded_inventory += order.amount
                    traded_credit -= order.amount * order.trade.price
            elif order.is_removed:
                continue
            elif order.type == TRADE_TYPE_SELL:
                reserved_inventory += order.amount
            elif order.type == TRADE_TYPE_BUY:
                reserved_credit += order.amount * order.price

        self._reserved_credit = reserved_credit
        self._reserved_inventory = reserved_inventory
        self._credit = self.default_credit + traded_credit
        self._inventory = self.default_inventory + traded_inventory

        if self.available_credit < 0 or self.available_inventory < 0:
            raise ConsistencyError(
                f"negative available balance for {self.bank_id}: "
                f"credit={self.available_credit} inventory={self.available_inventory}"
            )

    def add_order(self, order_type: str, amount: int, price: int) -> Task:
        def _add() -> int:
            with self.action_lock:
                try:
                    order = self.client.add_order(order_type, amount, price)
                except ExchangeError as e:
                    if e.is_insufficient_credit:
                        return 0
                    raise
                self._orders.append(order)
                self._last_order_at = self._clock()
                return self.scoring.post_orders

        return ScoreTask(_add)

    def remove_order(self, order: Order) -> Task:
        def _remove() -> int:
            with self.action_lock:
                if order.is_removed:
                    return 0
                try:
                    self.client.delete_order(order.id)
                except ExchangeError as e:
                    if e.is_not_found:
                        # Already settled or closed; not an error but no score either.
                        logger.info("delete 404 %s", e)
                        return 0
                    raise
                for o in self._orders:
                    if o.id == order.id:
                        o.closed_at = datetime.now()
                        break
                else:
                    logger.warning("not found removed order. %s", order.id)
                return self.scoring.delete_orders

        return ScoreTask(_remove)

    # ----- Scheduling -----

    def start(self) -> SerialTask:
        if self._started:
            raise RuntimeError(f"investor {self.bank_id} already started")
        self._started = True
        task = SerialTask(START_CAPACITY)
        task.add(self.top())
        task.add(self.info())
        task.add(self.signup())
        task.add(self.signin())
        task.add(self.update_orders())
        return task

    def next(self) -> SerialTask | None:
        with self.task_lock:
            if self.is_retired():
                return None
            task = SerialTask(2 + len(self._task_queue))
            task.add(self.info())
            for t in self._task_queue:
                task.add(t)
            self._task_queue = []
        return task
