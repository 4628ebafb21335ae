from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreConfig:
    get_top: int = 1
    signup: int = 1
    signin: int = 1
    get_info: int = 1
    get_orders: int = 1
    post_orders: int = 5
    delete_orders: int = 5


@dataclass(frozen=True)
class InvestorConfig:
    order_cap: int = 5
    polling_interval_seconds: float = 0.5
    order_update_interval_seconds: float = 2.0
    signup_jitter_seconds: float = 0.1


@dataclass(frozen=True)
class InvestorProfile:
    count: int
    credit: int
    inventory: int
    unit_amount: int
    unit_price: int


@dataclass(frozen=True)
class TargetConfig:
    base_url: str
    request_timeout_seconds: float
    user_agent: str


@dataclass(frozen=True)
class BenchSettings:
    target: TargetConfig
    scoring: ScoreConfig
    investor: InvestorConfig
    profiles: list[InvestorProfile]
    duration_seconds: float
    tick_interval_seconds: float
    workers: int
    api_enabled: bool
    api_host: str
    api_port: int
    log_level: str


def load_bench_settings(config: dict) -> BenchSettings:
    t = config.get("target") or {}
    s = config.get("scoring") or {}
    inv = config.get("investors") or {}
    b = config.get("bench") or {}
    api = config.get("api") or {}

    defaults = ScoreConfig()
    scoring = ScoreConfig(
        get_top=int(s.get("get_top", defaults.get_top)),
        signup=int(s.get("signup", defaults.signup)),
        signin=int(s.get("signin", defaults.signin)),
        get_info=int(s.get("get_info", defaults.get_info)),
        get_orders=int(s.get("get_orders", defaults.get_orders)),
        post_orders=int(s.get("post_orders", defaults.post_orders)),
        delete_orders=int(s.get("delete_orders", defaults.delete_orders)),
    )
    investor = InvestorConfig(
        order_cap=int(inv.get("order_cap", 5)),
        polling_interval_seconds=float(inv.get("polling_interval_seconds", 0.5)),
        order_update_interval_seconds=float(inv.get("order_update_interval_seconds", 2.0)),
        signup_jitter_seconds=float(inv.get("signup_jitter_seconds", 0.1)),
    )
    profiles = [
        InvestorProfile(
            count=int(p.get("count", 1)),
            credit=int(p.get("credit", 0)),
            inventory=int(p.get("inventory", 0)),
            unit_amount=int(p.get("unit_amount", 1)),
            unit_price=int(p.get("unit_price", 100)),
        )
        for p in (inv.get("profiles") or [])
    ]
    return BenchSettings(
        target=TargetConfig(
            base_url=str(t.get("base_url", "http://127.0.0.1:5000")).rstrip("/"),
            request_timeout_seconds=float(t.get("request_timeout_seconds", 10.0)),
            user_agent=str(t.get("user_agent", "tradebench/0.1")),
        ),
        scoring=scoring,
        investor=investor,
        profiles=profiles,
        duration_seconds=float(b.get("duration_seconds", 60)),
        tick_interval_seconds=float(b.get("tick_interval_seconds", 0.1)),
        workers=int(b.get("workers", 16)),
        api_enabled=bool(api.get("enabled", False)),
        api_host=str(api.get("host", "127.0.0.1")),
        api_port=int(api.get("port", 8000)),
        log_level=str(config.get("log_level", "INFO")),
    )
