"""
Scored units of work.

A task runs one action against the exchange and reports a non-negative score, or
raises. `SerialTask` chains tasks and stops at the first failure.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from src.domain.errors import SerialTaskAborted

logger = logging.getLogger(__name__)


class Task(Protocol):
    def run(self) -> int: ...


def _check_score(score: int) -> int:
    score = int(score)
    if score < 0:
        raise ValueError(f"task score must be >= 0; got {score}")
    return score


class ExecTask:
    """Run `action` and award a fixed score when it returns."""

    def __init__(self, action: Callable[[], object], score: int):
        self.action = action
        self.score = _check_score(score)

    def run(self) -> int:
        self.action()
        return self.score


class ScoreTask:
    """Run `action` and award whatever score it returns (0 for skipped no-ops)."""

    def __init__(self, action: Callable[[], int]):
        self.action = action

    def run(self) -> int:
        return _check_score(self.action())


class SerialTask:
    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = int(capacity)
        self._tasks: list[Task] = []
        self._done = False

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def add(self, task: Task) -> None:
        if len(self._tasks) >= self.capacity:
            raise ValueError(f"serial task is full (capacity={self.capacity})")
        self._tasks.append(task)

    def run(self) -> int:
        """
        Run every task in insertion order and return the summed score.

        Raises SerialTaskAborted at the first failure; later tasks never run.
        """
        if self._done:
            raise RuntimeError("serial task has already been run")
        self._done = True

        total = 0
        for idx, task in enumerate(self._tasks):
            try:
                total += task.run()
            except Exception as e:
                logger.debug("Serial task aborted at #%s: %s", idx, e)
                raise SerialTaskAborted(e, score=total, index=idx) from e
        return total
