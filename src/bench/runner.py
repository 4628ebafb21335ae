from __future__ import annotations

import logging
import secrets
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Sequence
from uuid import uuid4

from src.bench.settings import BenchSettings, load_bench_settings
from src.client.exchange_client import ExchangeClient
from src.domain.errors import ConsistencyError, SerialTaskAborted
from src.investor.random_investor import RandomInvestor
from src.ports.investor import Investor
from src.tasks.task import SerialTask
from src.utils.config_loader import load_config

logger = logging.getLogger(__name__)


@dataclass
class InvestorStats:
    score: int = 0
    tasks: int = 0
    errors: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": int(self.score),
            "tasks": int(self.tasks),
            "errors": int(self.errors),
            "last_error": self.last_error,
        }


class BenchRunner:
    """
    Drives a fixed set of investors on a worker pool.

    Each investor has at most one composite in flight; on every tick the idle ones
    are asked for their next composite. Scores of tasks that completed before a
    failure inside a composite are kept.
    """

    def __init__(
        self,
        investors: Sequence[Investor],
        *,
        workers: int = 16,
        tick_interval_seconds: float = 0.1,
        duration_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.investors = list(investors)
        self.workers = int(workers)
        self.tick_interval_seconds = float(tick_interval_seconds)
        self.duration_seconds = float(duration_seconds)
        self._clock = clock

        self._lock = threading.Lock()
        self._stats: dict[str, InvestorStats] = {i.bank_id: InvestorStats() for i in self.investors}
        self._inflight: dict[str, Future] = {}
        self._stop_evt = threading.Event()
        self._running = False
        self._started_at: float | None = None

    # ----- Scoring -----

    def run_task(self, investor: Investor, task: SerialTask) -> int:
        """Run one composite for `investor` and record its outcome. Returns the score credited."""
        stats = self._stats[investor.bank_id]
        try:
            score = task.run()
        except SerialTaskAborted as e:
            with self._lock:
                stats.score += e.score
                stats.tasks += e.index
                stats.errors += 1
                stats.last_error = str(e.cause)
            if isinstance(e.cause, ConsistencyError):
                logger.error("Consistency violation for %s: %s", investor.bank_id, e.cause)
                investor.retire()
            else:
                logger.warning("Task failed for %s: %s", investor.bank_id, e)
            return e.score
        with self._lock:
            stats.score += score
            stats.tasks += len(task)
        return score

    def total_score(self) -> int:
        with self._lock:
            return sum(s.score for s in self._stats.values())

    def stats_for(self, bank_id: str) -> InvestorStats:
        with self._lock:
            s = self._stats[bank_id]
            return InvestorStats(s.score, s.tasks, s.errors, s.last_error)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            stats = {k: v.to_dict() for k, v in self._stats.items()}
        elapsed = 0.0 if self._started_at is None else self._clock() - self._started_at
        return {
            "running": self._running,
            "elapsed_seconds": round(elapsed, 3),
            "duration_seconds": self.duration_seconds,
            "total_score": sum(s["score"] for s in stats.values()),
            "total_errors": sum(s["errors"] for s in stats.values()),
            "investors": [
                {
                    "bank_id": inv.bank_id,
                    "credit": inv.credit,
                    "inventory": inv.inventory,
                    "orders": len(inv.orders),
                    "signed_in": inv.is_signed_in(),
                    "retired": inv.is_retired(),
                    **stats.get(inv.bank_id, {}),
                }
                for inv in self.investors
            ],
        }

    # ----- Scheduling -----

    def _is_busy(self, investor: Investor) -> bool:
        fut = self._inflight.get(investor.bank_id)
        return fut is not None and not fut.done()

    def _submit(self, pool: ThreadPoolExecutor, investor: Investor, task: SerialTask) -> None:
        self._inflight[investor.bank_id] = pool.submit(self.run_task, investor, task)

    def tick(self, pool: ThreadPoolExecutor) -> int:
        """Hand every idle investor its next composite. Returns the number submitted."""
        submitted = 0
        for investor in self.investors:
            if self._is_busy(investor):
                continue
            if not investor.is_started():
                task = investor.start()
            else:
                task = investor.next()
            if task is None:
                continue
            self._submit(pool, investor, task)
            submitted += 1
        return submitted

    def stop(self) -> None:
        self._stop_evt.set()

    def run(self) -> int:
        """Run the benchmark for `duration_seconds` and return the total score."""
        self._running = True
        self._started_at = self._clock()
        deadline = self._started_at + self.duration_seconds
        logger.info(
            "Starting bench: %s investors, %s workers, %ss",
            len(self.investors),
            self.workers,
            self.duration_seconds,
        )
        try:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="investor") as pool:
                while not self._stop_evt.is_set() and self._clock() < deadline:
                    if all(i.is_retired() for i in self.investors):
                        logger.warning("All investors retired; stopping early.")
                        break
                    self.tick(pool)
                    self._stop_evt.wait(self.tick_interval_seconds)
                # In-flight tasks run to completion; retirement is cooperative.
                for fut in list(self._inflight.values()):
                    fut.result()
        finally:
            self._running = False

        total = self.total_score()
        logger.info("Bench finished. score=%s errors=%s", total, self.snapshot()["total_errors"])
        return total


def build_investors(settings: BenchSettings) -> list[RandomInvestor]:
    investors: list[RandomInvestor] = []
    for profile in settings.profiles:
        for _ in range(profile.count):
            bank_id = f"tb-{uuid4().hex[:12]}"
            client = ExchangeClient(
                settings.target.base_url,
                bank_id=bank_id,
                password=secrets.token_urlsafe(12),
                timeout=settings.target.request_timeout_seconds,
                user_agent=settings.target.user_agent,
            )
            investors.append(
                RandomInvestor(
                    client,
                    credit=profile.credit,
                    inventory=profile.inventory,
                    unit_amount=profile.unit_amount,
                    unit_price=profile.unit_price,
                    scoring=settings.scoring,
                    config=settings.investor,
                )
            )
    return investors


def _start_api_server(runner: BenchRunner, settings: BenchSettings) -> None:
    import uvicorn

    from src.api.app import create_app

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(runner),
            host=settings.api_host,
            port=settings.api_port,
            log_level="warning",
        )
    )
    threading.Thread(target=server.run, name="status-api", daemon=True).start()
    logger.info("Status API listening on %s:%s", settings.api_host, settings.api_port)


def main(config_path: str | None = None) -> None:
    # Configure logging (idempotent; safe if configured elsewhere).
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    base_config = load_config(config_path)
    settings = load_bench_settings(base_config)
    logging.getLogger().setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    investors = build_investors(settings)
    if not investors:
        logger.error("No investors configured (investors.profiles is empty). Exiting.")
        return

    runner = BenchRunner(
        investors,
        workers=settings.workers,
        tick_interval_seconds=settings.tick_interval_seconds,
        duration_seconds=settings.duration_seconds,
    )
    if settings.api_enabled:
        _start_api_server(runner, settings)

    try:
        score = runner.run()
    except KeyboardInterrupt:
        runner.stop()
        logger.warning("Interrupted.")
        return
    print(f"score: {score}")
