from __future__ import annotations

from typing import Protocol

from src.domain.models import Order
from src.tasks.task import SerialTask


class Investor(Protocol):
    def start(self) -> SerialTask | None: ...

    def next(self) -> SerialTask | None: ...

    @property
    def bank_id(self) -> str: ...

    @property
    def credit(self) -> int: ...

    @property
    def inventory(self) -> int: ...

    @property
    def orders(self) -> list[Order]: ...

    @property
    def latest_trade_price(self) -> int: ...

    def is_signed_in(self) -> bool: ...

    def is_started(self) -> bool: ...

    def is_retired(self) -> bool: ...

    def retire(self) -> None: ...
