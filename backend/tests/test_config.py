from decimal import Decimal

import pytest

from bethouse.config import get_settings


def test_settings_defaults(monkeypatch) -> None:
    for key in [
        "HOUSE_EDGE",
        "ODDS_FLOOR",
        "DEFAULT_SEED_ODD",
        "DAILY_BONUS_AMOUNT",
        "BONUS_TIMEZONE",
        "LOCK_TIMEOUT_SEC",
        "ENABLE_SCHEDULER",
        "SCHED_REQUIRE_DB",
        "MONEY_REQUEST_MAX",
    ]:
        monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.house_edge == Decimal("0.05")
    assert settings.odds_floor == Decimal("1.01")
    assert settings.default_seed_odd == Decimal("2.00")
    assert settings.daily_bonus_amount == Decimal("100.00")
    assert settings.bonus_timezone == "UTC"
    assert settings.lock_timeout_sec == 5.0
    assert settings.enable_scheduler is False
    assert settings.sched_require_db is True
    assert settings.sched_autolock_interval_sec == 60
    assert settings.sched_notify_interval_sec == 2
    assert settings.money_request_max == Decimal("1000.00")


def test_settings_env_overrides_defaults(monkeypatch) -> None:
    monkeypatch.setenv("HOUSE_EDGE", "0.10")
    monkeypatch.setenv("ODDS_FLOOR", "1.05")
    monkeypatch.setenv("DAILY_BONUS_AMOUNT", "25.50")
    monkeypatch.setenv("BONUS_TIMEZONE", "Europe/Bucharest")
    monkeypatch.setenv("LOCK_TIMEOUT_SEC", "0.5")
    monkeypatch.setenv("ENABLE_SCHEDULER", "yes")
    monkeypatch.setenv("SCHED_NOTIFY_INTERVAL_SEC", "10")

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.house_edge == Decimal("0.10")
    assert settings.odds_floor == Decimal("1.05")
    assert settings.daily_bonus_amount == Decimal("25.50")
    assert settings.bonus_timezone == "Europe/Bucharest"
    assert settings.lock_timeout_sec == 0.5
    assert settings.enable_scheduler is True
    assert settings.sched_notify_interval_sec == 10


def test_settings_reject_out_of_range_house_edge(monkeypatch) -> None:
    monkeypatch.setenv("HOUSE_EDGE", "1.2")
    get_settings.cache_clear()
    with pytest.raises(ValueError):
        get_settings()


def test_settings_reject_non_numeric_decimal(monkeypatch) -> None:
    monkeypatch.setenv("ODDS_FLOOR", "cheap")
    get_settings.cache_clear()
    with pytest.raises(ValueError, match="ODDS_FLOOR"):
        get_settings()
