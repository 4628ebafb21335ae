from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any

import requests

from src.domain.errors import ExchangeError
from src.domain.models import InfoResult, Order

logger = logging.getLogger(__name__)


class ExchangeClient:
    """
    HTTP client for one investor's session on the exchange.

    Each instance owns a `requests.Session`, so the sign-in cookie stays with the
    investor that obtained it. Error responses become ExchangeError; transport
    failures propagate as requests exceptions.
    """

    def __init__(
        self,
        base_url: str,
        bank_id: str,
        password: str,
        name: str | None = None,
        *,
        timeout: float = 10.0,
        user_agent: str = "tradebench/0.1",
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bank_id = bank_id
        self.password = password
        self.name = name or bank_id
        self.timeout = float(timeout)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self._retired = threading.Event()

    def is_retired(self) -> bool:
        return self._retired.is_set()

    def retire(self) -> None:
        if not self._retired.is_set():
            logger.info("Retiring investor %s", self.bank_id)
        self._retired.set()

    # -------------------
    # Internal
    # -------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        if resp.status_code >= 400:
            message = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict) and body.get("err"):
                    message = str(body["err"])
            except ValueError:
                pass
            raise ExchangeError(resp.status_code, message)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # -------------------
    # API
    # -------------------

    def top(self) -> None:
        self._request("GET", "/")

    def signup(self) -> None:
        self._request(
            "POST",
            "/signup",
            data={"name": self.name, "bank_id": self.bank_id, "password": self.password},
        )

    def signin(self) -> None:
        self._request("POST", "/signin", data={"bank_id": self.bank_id, "password": self.password})

    def info(self, cursor: int) -> InfoResult:
        data = self._request("GET", "/info", params={"cursor": int(cursor)})
        if not isinstance(data, dict):
            raise ExchangeError(500, f"unexpected /info response: {data!r}")
        return InfoResult.from_dict(data)

    def get_orders(self) -> list[Order]:
        data = self._request("GET", "/orders")
        return [Order.from_dict(o) for o in (data or [])]

    def add_order(self, order_type: str, amount: int, price: int) -> Order:
        data = self._request(
            "POST",
            "/orders",
            data={"type": order_type, "amount": int(amount), "price": int(price)},
        )
        if not isinstance(data, dict) or "id" not in data:
            raise ExchangeError(500, f"unexpected POST /orders response: {data!r}")
        return Order(
            id=int(data["id"]),
            type=order_type,
            amount=int(amount),
            price=int(price),
            created_at=datetime.now(),
        )

    def delete_order(self, order_id: int) -> None:
        self._request("DELETE", f"/order/{int(order_id)}")
