from __future__ import annotations

import logging
import os
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_cache_lock = threading.Lock()
_cached: dict[str, Any] | None = None
_cached_path: str | None = None


def _project_root() -> Path:
    # src/utils/config_loader.py -> src/utils -> src -> project root
    return Path(__file__).resolve().parents[2]


def default_config_path() -> Path:
    return _project_root() / "config" / "config.yaml"


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    """
    Override selected YAML settings with environment variables.

    Lets a run point at a different target or change its length without editing the file.
    """
    target = cfg.setdefault("target", {})
    if os.getenv("TRADEBENCH_TARGET_URL"):
        target["base_url"] = os.environ["TRADEBENCH_TARGET_URL"]

    bench = cfg.setdefault("bench", {})
    if os.getenv("TRADEBENCH_DURATION_SECONDS"):
        bench["duration_seconds"] = float(os.environ["TRADEBENCH_DURATION_SECONDS"])
    if os.getenv("TRADEBENCH_WORKERS"):
        bench["workers"] = int(os.environ["TRADEBENCH_WORKERS"])

    # Scale every investor profile to the given count (handy for quick smoke runs).
    if os.getenv("TRADEBENCH_INVESTORS"):
        count = int(os.environ["TRADEBENCH_INVESTORS"])
        for profile in (cfg.get("investors") or {}).get("profiles") or []:
            if isinstance(profile, dict):
                profile["count"] = count


def validate_config(cfg: dict[str, Any]) -> None:
    """
    Fail fast if the configuration is missing required sections.
    Keep this minimal and pragmatic; avoid over-engineering.
    """
    required_top = ["target", "scoring", "investors", "bench"]
    missing = [k for k in required_top if k not in cfg]
    if missing:
        raise ValueError(f"Missing required config sections: {', '.join(missing)}")

    target = cfg.get("target") or {}
    if not target.get("base_url"):
        raise ValueError("Missing target.base_url in config")

    investors = cfg.get("investors") or {}
    if int(investors.get("order_cap", 5)) <= 0:
        raise ValueError("investors.order_cap must be > 0")
    for idx, p in enumerate(investors.get("profiles") or []):
        if not isinstance(p, dict):
            raise ValueError(f"investors.profiles[{idx}] must be a mapping")
        for k in ["credit", "inventory", "unit_amount", "unit_price"]:
            if k not in p:
                raise ValueError(f"Missing investors.profiles[{idx}].{k} in config")
        if int(p["unit_amount"]) <= 0 or int(p["unit_price"]) <= 0:
            raise ValueError(f"investors.profiles[{idx}] unit_amount and unit_price must be > 0")

    for k, v in (cfg.get("scoring") or {}).items():
        if int(v) < 0:
            raise ValueError(f"scoring.{k} must be >= 0")


def load_config(config_path: str | Path | None = None, *, force_reload: bool = False) -> dict[str, Any]:
    """
    Load the YAML config once and reuse it across the process.

    - Reads `config/config.yaml` by default.
    - Applies environment overrides for a small set of operational settings.
    - Returns a deep copy so callers can safely mutate local copies.
    """
    global _cached, _cached_path

    path = Path(config_path) if config_path else default_config_path()
    path_str = str(path.resolve())

    with _cache_lock:
        if not force_reload and _cached is not None and _cached_path == path_str:
            return deepcopy(_cached)

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

        if not isinstance(cfg, dict):
            raise ValueError(f"Config must be a YAML mapping (dict); got {type(cfg).__name__}")

        _apply_env_overrides(cfg)
        validate_config(cfg)

        _cached = cfg
        _cached_path = path_str
        logger.info("Loaded config from %s", path_str)
        return deepcopy(cfg)
