from __future__ import annotations

# Message the exchange returns when the bank refuses to reserve credit for a buy order.
INSUFFICIENT_CREDIT_MESSAGE = "銀行残高が足りません"


class ExchangeError(Exception):
    """Error response from the exchange (`{"code": ..., "err": ...}`)."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_insufficient_credit(self) -> bool:
        return INSUFFICIENT_CREDIT_MESSAGE in self.message

    @property
    def is_already_exists(self) -> bool:
        return self.status_code == 409 or "already exists" in self.message


class ConsistencyError(Exception):
    """The exchange's view of an investor's orders contradicts what the investor knows."""


class SerialTaskAborted(Exception):
    """
    Raised when a task inside a serial composite fails.

    `score` is the sum of the tasks that completed before the failure; whether it
    counts is up to whoever runs the composite.
    """

    def __init__(self, cause: BaseException, *, score: int, index: int):
        super().__init__(f"task #{index} failed: {type(cause).__name__}: {cause}")
        self.cause = cause
        self.score = int(score)
        self.index = int(index)
