"""tradebench command line.

Run a benchmark against an exchange:

    python main.py --target http://127.0.0.1:5000 --duration 60

Command-line flags win over `config/secrets.env`, which wins over
`config/config.yaml`. The bench itself lives in `src/bench/runner.py`.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parent


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark a trading exchange with simulated investors.")
    parser.add_argument("--config", default=None, help="YAML config (default: config/config.yaml)")
    parser.add_argument(
        "--env-file",
        default=str(ROOT / "config" / "secrets.env"),
        help="dotenv file with TRADEBENCH_* overrides (default: config/secrets.env)",
    )
    parser.add_argument("--target", default=None, help="exchange base URL")
    parser.add_argument("--duration", type=float, default=None, help="run length in seconds")
    parser.add_argument("--investors", type=int, default=None, help="investors per profile")
    parser.add_argument("--workers", type=int, default=None, help="worker threads")
    return parser.parse_args(argv)


def apply_overrides(args: argparse.Namespace) -> None:
    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # The config loader reads these after the dotenv file has been applied.
    flags = {
        "TRADEBENCH_TARGET_URL": args.target,
        "TRADEBENCH_DURATION_SECONDS": args.duration,
        "TRADEBENCH_INVESTORS": args.investors,
        "TRADEBENCH_WORKERS": args.workers,
    }
    for name, value in flags.items():
        if value is not None:
            os.environ[name] = str(value)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    apply_overrides(args)

    from src.bench.runner import main as runner_main

    runner_main(config_path=args.config)


if __name__ == "__main__":
    main()
