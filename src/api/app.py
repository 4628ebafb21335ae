from __future__ import annotations

import logging
import traceback
from typing import Any, TYPE_CHECKING

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from src.bench.runner import BenchRunner

logger = logging.getLogger(__name__)


def create_app(runner: BenchRunner | None) -> FastAPI:
    """
    Read-only status API over a running bench.

    The runner is shared with the bench thread; every endpoint only reads its snapshot.
    """
    app = FastAPI(
        title="tradebench status API",
        version="0.1.0",
    )

    # Local dev defaults.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}\n{traceback.format_exc()}")
        return JSONResponse(status_code=500, content={"detail": f"{type(exc).__name__}: {exc}"})

    def _require_runner() -> BenchRunner:
        if runner is None:
            raise HTTPException(status_code=503, detail="bench runner not attached")
        return runner

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "runner_attached": runner is not None,
            "running": bool(runner is not None and runner.snapshot()["running"]),
        }

    @app.get("/api/score")
    async def score() -> dict[str, Any]:
        snap = _require_runner().snapshot()
        return {
            "running": snap["running"],
            "elapsed_seconds": snap["elapsed_seconds"],
            "duration_seconds": snap["duration_seconds"],
            "total_score": snap["total_score"],
            "total_errors": snap["total_errors"],
            "investors": len(snap["investors"]),
            "retired": sum(1 for i in snap["investors"] if i["retired"]),
        }

    @app.get("/api/investors")
    async def investors(limit: int = Query(default=200, ge=1, le=5000)) -> list[dict[str, Any]]:
        snap = _require_runner().snapshot()
        rows = sorted(snap["investors"], key=lambda r: r.get("score", 0), reverse=True)
        return jsonable_encoder(rows[:limit])

    return app
