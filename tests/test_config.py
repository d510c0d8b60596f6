"""Tests for configuration loading and validation."""

import pytest

from booking_engine.config import (
    AppConfig,
    PricingConfig,
    RefundConfig,
    SchedulingConfig,
    _safe_float,
    _safe_int,
    _validate_config,
)


def _scheduling(**overrides) -> SchedulingConfig:
    values = {
        "default_timezone": "Europe/Berlin",
        "slot_step_minutes": 30,
        "min_booking_minutes": 30,
        "max_booking_hours": 48,
        "min_lead_time_minutes": 0,
    }
    values.update(overrides)
    scheduling = SchedulingConfig.__new__(SchedulingConfig)
    for name, value in values.items():
        object.__setattr__(scheduling, name, value)
    return scheduling


def _config(scheduling=None, pricing=None, refunds=None) -> AppConfig:
    config = AppConfig.__new__(AppConfig)
    object.__setattr__(config, "scheduling", scheduling or _scheduling())
    object.__setattr__(config, "pricing", pricing or PricingConfig(currency="EUR", platform_fee=0))
    object.__setattr__(config, "refunds", refunds or RefundConfig())
    object.__setattr__(config, "log_level", "INFO")
    object.__setattr__(config, "service_name", "test")
    return config


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(_config())  # should not raise

    def test_unknown_timezone(self):
        with pytest.raises(ValueError, match="DEFAULT_TIMEZONE"):
            _validate_config(_config(scheduling=_scheduling(default_timezone="Mars/Olympus")))

    def test_zero_slot_step(self):
        with pytest.raises(ValueError, match="SLOT_STEP_MINUTES"):
            _validate_config(_config(scheduling=_scheduling(slot_step_minutes=0)))

    def test_zero_min_booking(self):
        with pytest.raises(ValueError, match="MIN_BOOKING_MINUTES"):
            _validate_config(_config(scheduling=_scheduling(min_booking_minutes=0)))

    def test_max_below_min(self):
        with pytest.raises(ValueError, match="MAX_BOOKING_HOURS"):
            _validate_config(_config(scheduling=_scheduling(min_booking_minutes=120, max_booking_hours=1)))

    def test_negative_lead_time(self):
        with pytest.raises(ValueError, match="MIN_LEAD_TIME_MINUTES"):
            _validate_config(_config(scheduling=_scheduling(min_lead_time_minutes=-5)))

    def test_bad_currency(self):
        with pytest.raises(ValueError, match="CURRENCY"):
            _validate_config(_config(pricing=PricingConfig(currency="EURO", platform_fee=0)))

    def test_negative_platform_fee(self):
        with pytest.raises(ValueError, match="PLATFORM_FEE"):
            _validate_config(_config(pricing=PricingConfig(currency="EUR", platform_fee=-1)))

    def test_refund_rate_above_one(self):
        with pytest.raises(ValueError, match="REFUND_FULL_RATE"):
            _validate_config(_config(refunds=RefundConfig(full_rate=1.5)))

    def test_refund_rate_negative(self):
        with pytest.raises(ValueError, match="REFUND_PARTIAL_RATE"):
            _validate_config(_config(refunds=RefundConfig(partial_rate=-0.1)))

    def test_refund_thresholds_out_of_order(self):
        with pytest.raises(ValueError, match="REFUND_FULL_NOTICE_HOURS"):
            _validate_config(_config(refunds=RefundConfig(full_notice_hours=12, partial_notice_hours=24)))


class TestEnvParsing:
    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("SLOT_STEP_MINUTES", "15")
        assert _safe_int("SLOT_STEP_MINUTES", "30") == 15

    def test_safe_int_default(self, monkeypatch):
        monkeypatch.delenv("SLOT_STEP_MINUTES", raising=False)
        assert _safe_int("SLOT_STEP_MINUTES", "30") == 30

    def test_safe_int_bad_value(self, monkeypatch):
        monkeypatch.setenv("PLATFORM_FEE", "ten")
        with pytest.raises(ValueError, match="PLATFORM_FEE"):
            _safe_int("PLATFORM_FEE", "0")

    def test_safe_float_bad_value(self, monkeypatch):
        monkeypatch.setenv("REFUND_FULL_RATE", "most")
        with pytest.raises(ValueError, match="REFUND_FULL_RATE"):
            _safe_float("REFUND_FULL_RATE", "0.9")
