import pytest
import yaml

from src.bench.settings import load_bench_settings
from src.utils.config_loader import default_config_path, load_config, validate_config


def _write(tmp_path, cfg):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def _base_config():
    return {
        "target": {"base_url": "http://127.0.0.1:5000"},
        "scoring": {"post_orders": 5},
        "investors": {
            "order_cap": 5,
            "profiles": [{"count": 2, "credit": 1000, "inventory": 5, "unit_amount": 1, "unit_price": 100}],
        },
        "bench": {"duration_seconds": 10},
    }


def test_default_config_file_is_valid():
    cfg = load_config(default_config_path(), force_reload=True)
    settings = load_bench_settings(cfg)
    assert settings.investor.order_cap > 0
    assert settings.profiles


def test_missing_section_is_rejected():
    cfg = _base_config()
    del cfg["bench"]
    with pytest.raises(ValueError, match=r"Missing required config sections: bench"):
        validate_config(cfg)


def test_profile_requires_positive_units():
    cfg = _base_config()
    cfg["investors"]["profiles"][0]["unit_price"] = 0
    with pytest.raises(ValueError, match=r"unit_price must be > 0"):
        validate_config(cfg)


def test_negative_score_is_rejected():
    cfg = _base_config()
    cfg["scoring"]["signup"] = -1
    with pytest.raises(ValueError, match=r"scoring.signup"):
        validate_config(cfg)


def test_env_overrides_are_applied(tmp_path, monkeypatch):
    path = _write(tmp_path, _base_config())
    monkeypatch.setenv("TRADEBENCH_TARGET_URL", "http://other:8080")
    monkeypatch.setenv("TRADEBENCH_DURATION_SECONDS", "2.5")
    monkeypatch.setenv("TRADEBENCH_INVESTORS", "7")
    cfg = load_config(path, force_reload=True)
    settings = load_bench_settings(cfg)
    assert settings.target.base_url == "http://other:8080"
    assert settings.duration_seconds == 2.5
    assert settings.profiles[0].count == 7


def test_load_config_returns_copies(tmp_path, monkeypatch):
    monkeypatch.delenv("TRADEBENCH_TARGET_URL", raising=False)
    path = _write(tmp_path, _base_config())
    cfg = load_config(path, force_reload=True)
    cfg["target"]["base_url"] = "mutated"
    again = load_config(path)
    assert again["target"]["base_url"] == "http://127.0.0.1:5000"


def test_settings_defaults():
    settings = load_bench_settings(_base_config())
    assert settings.scoring.post_orders == 5
    assert settings.scoring.get_info == 1
    assert settings.investor.polling_interval_seconds == 0.5
    assert settings.api_enabled is False
