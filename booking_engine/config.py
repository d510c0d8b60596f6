"""
Centralized configuration with environment variable overrides.

Scheduling limits, pricing and refund thresholds are configurable here.
Nothing is hardcoded in calendar, pricing or lifecycle logic.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from booking_engine.logging_context import LOG_FORMAT, install_request_id

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Calendar granularity and booking length limits."""

    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "Europe/Berlin")
    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    min_booking_minutes: int = _safe_int("MIN_BOOKING_MINUTES", "30")
    max_booking_hours: int = _safe_int("MAX_BOOKING_HOURS", "48")
    min_lead_time_minutes: int = _safe_int("MIN_LEAD_TIME_MINUTES", "0")


@dataclass(frozen=True)
class PricingConfig:
    """Currency and platform fee, amounts in minor units."""

    currency: str = os.getenv("CURRENCY", "EUR")
    platform_fee: int = _safe_int("PLATFORM_FEE", "0")


@dataclass(frozen=True)
class RefundConfig:
    """Notice thresholds for the tiered cancellation refund."""

    full_notice_hours: int = _safe_int("REFUND_FULL_NOTICE_HOURS", "48")
    full_rate: float = _safe_float("REFUND_FULL_RATE", "0.90")
    partial_notice_hours: int = _safe_int("REFUND_PARTIAL_NOTICE_HOURS", "24")
    partial_rate: float = _safe_float("REFUND_PARTIAL_RATE", "0.50")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    refunds: RefundConfig = field(default_factory=RefundConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    try:
        ZoneInfo(config.scheduling.default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"DEFAULT_TIMEZONE is not a known IANA zone: {config.scheduling.default_timezone!r}"
        ) from None

    if config.scheduling.slot_step_minutes < 1:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be >= 1, got {config.scheduling.slot_step_minutes}"
        )
    if config.scheduling.min_booking_minutes < 1:
        raise ValueError(
            f"MIN_BOOKING_MINUTES must be >= 1, got {config.scheduling.min_booking_minutes}"
        )
    if config.scheduling.max_booking_hours * 60 < config.scheduling.min_booking_minutes:
        raise ValueError(
            "MAX_BOOKING_HOURS must allow at least MIN_BOOKING_MINUTES, "
            f"got {config.scheduling.max_booking_hours}"
        )
    if config.scheduling.min_lead_time_minutes < 0:
        raise ValueError(
            f"MIN_LEAD_TIME_MINUTES must be >= 0, got {config.scheduling.min_lead_time_minutes}"
        )
    if len(config.pricing.currency) != 3 or not config.pricing.currency.isalpha():
        raise ValueError(
            f"CURRENCY must be a 3-letter ISO code, got {config.pricing.currency!r}"
        )
    if config.pricing.platform_fee < 0:
        raise ValueError(
            f"PLATFORM_FEE must be >= 0, got {config.pricing.platform_fee}"
        )

    for rate_name, rate_value in [
        ("REFUND_FULL_RATE", config.refunds.full_rate),
        ("REFUND_PARTIAL_RATE", config.refunds.partial_rate),
    ]:
        if not 0.0 <= rate_value <= 1.0:
            raise ValueError(f"{rate_name} must be between 0.0 and 1.0, got {rate_value}")

    if config.refunds.partial_notice_hours < 0:
        raise ValueError(
            "REFUND_PARTIAL_NOTICE_HOURS must be >= 0, "
            f"got {config.refunds.partial_notice_hours}"
        )
    if config.refunds.full_notice_hours < config.refunds.partial_notice_hours:
        raise ValueError(
            "REFUND_FULL_NOTICE_HOURS must be >= REFUND_PARTIAL_NOTICE_HOURS, "
            f"got {config.refunds.full_notice_hours}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_request_id()
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
