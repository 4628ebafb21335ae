from __future__ import annotations

import logging
import random

from src.bench.settings import InvestorConfig, ScoreConfig
from src.domain.models import Order
from src.investor.core import InvestorCore
from src.investor.policy import CANCEL, PLACE, REPRICE, RandomPolicy
from src.ports.exchange import ExchangePort
from src.tasks.task import ExecTask, SerialTask, Task

logger = logging.getLogger(__name__)


class RandomInvestor:
    """
    Investor driven by `RandomPolicy`.

    Every composite ends with a decision task. The decision itself is cheap: the
    chosen order action and a follow-up reconciliation are queued and run on the
    next tick.
    """

    def __init__(
        self,
        client: ExchangePort,
        credit: int,
        inventory: int,
        unit_amount: int,
        unit_price: int,
        *,
        scoring: ScoreConfig | None = None,
        config: InvestorConfig | None = None,
        rng: random.Random | None = None,
        **core_kwargs,
    ):
        config = config or InvestorConfig()
        self.core = InvestorCore(
            client,
            credit,
            inventory,
            scoring=scoring,
            config=config,
            rng=rng,
            **core_kwargs,
        )
        self.policy = RandomPolicy(unit_amount=unit_amount, unit_price=unit_price, order_cap=config.order_cap)

    # ----- Investor accessors -----

    @property
    def bank_id(self) -> str:
        return self.core.bank_id

    @property
    def credit(self) -> int:
        return self.core.credit

    @property
    def inventory(self) -> int:
        return self.core.inventory

    @property
    def orders(self) -> list[Order]:
        return self.core.orders

    @property
    def latest_trade_price(self) -> int:
        return self.core.latest_trade_price

    @property
    def unit_price(self) -> int:
        return self.policy.unit_price

    def is_signed_in(self) -> bool:
        return self.core.is_signed_in()

    def is_started(self) -> bool:
        return self.core.is_started()

    def is_retired(self) -> bool:
        return self.core.is_retired()

    def retire(self) -> None:
        self.core.client.retire()

    # ----- Scheduling -----

    def start(self) -> SerialTask | None:
        if self.is_retired():
            return None
        task = self.core.start()
        task.add(self.decision_task())
        return task

    def next(self) -> SerialTask | None:
        if self.is_retired():
            return None
        task = self.core.next()
        if task is None:
            return None
        task.add(self.decision_task())
        return task

    def decision_task(self) -> Task:
        return ExecTask(self._queue_decision, 0)

    def _queue_decision(self) -> None:
        task = self.order_action()
        if task is not None:
            self.core.push_next_task(task)
            self.core.push_next_task(self.core.update_orders())

    def order_action(self) -> Task | None:
        """Evaluate the policy once and return the order task it asks for, if any."""
        core = self.core
        with core.action_lock:
            if core.is_retired():
                return None
            last = core.last_order_at
            if (
                core.open_orders
                and last is not None
                and core.now() - last < core.config.order_update_interval_seconds
            ):
                return None

            decision = self.policy.decide(core.view(), core.rng)
            if decision is None:
                return None
            if decision.kind == CANCEL and decision.order is not None:
                return core.remove_order(decision.order)
            if decision.kind == PLACE and decision.order_type is not None:
                return core.add_order(decision.order_type, decision.amount, decision.price)
            if decision.kind == REPRICE:
                logger.debug("%s reprice %s -> %s", core.bank_id, self.policy.unit_price, decision.price)
                self.policy.unit_price = decision.price
        return None
