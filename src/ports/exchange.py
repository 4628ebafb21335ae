from __future__ import annotations

from typing import Protocol

from src.domain.models import InfoResult, Order


class ExchangePort(Protocol):
    bank_id: str

    def top(self) -> None: ...

    def signup(self) -> None: ...

    def signin(self) -> None: ...

    def info(self, cursor: int) -> InfoResult: ...

    def get_orders(self) -> list[Order]: ...

    def add_order(self, order_type: str, amount: int, price: int) -> Order: ...

    def delete_order(self, order_id: int) -> None: ...

    def is_retired(self) -> bool: ...

    def retire(self) -> None: ...
