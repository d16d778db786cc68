"""
Centralized configuration with environment variable overrides.

Slot granularity, alternative-slot limits, cancellation fee tiers and
reminder windows are configurable here. Nothing is hardcoded in the
calculator or lifecycle logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_engine.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

REMINDER_CHANNELS = frozenset({"email", "sms"})


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
    """Slot generation and alternative-slot search settings."""

    slot_granularity_minutes: int = _safe_int("SLOT_GRANULARITY_MINUTES", "15")
    max_alternatives: int = _safe_int("MAX_ALTERNATIVES", "5")
    alternative_window_minutes: int = _safe_int("ALTERNATIVE_WINDOW_MINUTES", "30")
    default_lookahead_days: int = _safe_int("DEFAULT_LOOKAHEAD_DAYS", "30")


@dataclass(frozen=True)
class CancellationConfig:
    """Default cancellation fee tiers for services without their own policy."""

    full_fee_within_hours: float = _safe_float("CANCELLATION_FULL_FEE_HOURS", "2")
    partial_fee_within_hours: float = _safe_float("CANCELLATION_PARTIAL_FEE_HOURS", "24")
    partial_fee_percentage: float = _safe_float("CANCELLATION_PARTIAL_FEE_PERCENT", "50")
    default_deadline_hours: int = _safe_int("CANCELLATION_DEADLINE_HOURS", "24")


@dataclass(frozen=True)
class ReminderConfig:
    """Reminder sweep windows and delivery channels."""

    first_reminder_hours: int = _safe_int("FIRST_REMINDER_HOURS", "24")
    final_reminder_hours: int = _safe_int("FINAL_REMINDER_HOURS", "2")
    channels: str = os.getenv("REMINDER_CHANNELS", "email,sms")
    sweep_interval_seconds: int = _safe_int("REMINDER_SWEEP_INTERVAL", "300")

    @property
    def channel_list(self) -> list[str]:
        return [c.strip() for c in self.channels.split(",") if c.strip()]


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    cancellation: CancellationConfig = field(default_factory=CancellationConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    default_currency: str = os.getenv("DEFAULT_CURRENCY", "GBP")
    engine_name: str = os.getenv("ENGINE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    scheduling = config.scheduling
    if not 1 <= scheduling.slot_granularity_minutes <= 60:
        raise ValueError(
            "SLOT_GRANULARITY_MINUTES must be between 1 and 60, "
            f"got {scheduling.slot_granularity_minutes}"
        )
    if scheduling.max_alternatives < 1:
        raise ValueError(
            f"MAX_ALTERNATIVES must be >= 1, got {scheduling.max_alternatives}"
        )
    if scheduling.alternative_window_minutes < 0:
        raise ValueError(
            "ALTERNATIVE_WINDOW_MINUTES must be >= 0, "
            f"got {scheduling.alternative_window_minutes}"
        )
    if scheduling.default_lookahead_days < 1:
        raise ValueError(
            f"DEFAULT_LOOKAHEAD_DAYS must be >= 1, got {scheduling.default_lookahead_days}"
        )

    cancellation = config.cancellation
    if cancellation.full_fee_within_hours < 0:
        raise ValueError(
            "CANCELLATION_FULL_FEE_HOURS must be >= 0, "
            f"got {cancellation.full_fee_within_hours}"
        )
    if cancellation.partial_fee_within_hours < cancellation.full_fee_within_hours:
        raise ValueError(
            "CANCELLATION_PARTIAL_FEE_HOURS must be >= CANCELLATION_FULL_FEE_HOURS, "
            f"got {cancellation.partial_fee_within_hours}"
        )
    if not 0.0 <= cancellation.partial_fee_percentage <= 100.0:
        raise ValueError(
            "CANCELLATION_PARTIAL_FEE_PERCENT must be between 0 and 100, "
            f"got {cancellation.partial_fee_percentage}"
        )
    if cancellation.default_deadline_hours < 0:
        raise ValueError(
            "CANCELLATION_DEADLINE_HOURS must be >= 0, "
            f"got {cancellation.default_deadline_hours}"
        )

    reminders = config.reminders
    if reminders.final_reminder_hours < 1:
        raise ValueError(
            f"FINAL_REMINDER_HOURS must be >= 1, got {reminders.final_reminder_hours}"
        )
    if reminders.first_reminder_hours <= reminders.final_reminder_hours:
        raise ValueError(
            "FIRST_REMINDER_HOURS must be greater than FINAL_REMINDER_HOURS, "
            f"got {reminders.first_reminder_hours}"
        )
    unknown = set(reminders.channel_list) - REMINDER_CHANNELS
    if unknown:
        raise ValueError(f"REMINDER_CHANNELS contains unknown channels: {sorted(unknown)}")
    if reminders.sweep_interval_seconds < 1:
        raise ValueError(
            "REMINDER_SWEEP_INTERVAL must be >= 1, "
            f"got {reminders.sweep_interval_seconds}"
        )

    if len(config.default_currency) != 3:
        raise ValueError(
            f"DEFAULT_CURRENCY must be a 3-letter code, got {config.default_currency!r}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.engine_name)
    return config


# Singleton instance
settings = load_config()
