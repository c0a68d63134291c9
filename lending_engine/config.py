"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .numeric import BPS_FULL, SECONDS_PER_YEAR

logger = logging.getLogger(__name__)

THRESHOLD_MIN_BPS = 110
THRESHOLD_MAX_BPS = 300
FREQUENCY_MIN_HOURS = 1
FREQUENCY_MAX_HOURS = 168

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccrualConfig:
    seconds_per_year: int = SECONDS_PER_YEAR


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)
    timeout: int = 10


@dataclass(frozen=True)
class OracleConfig:
    provider: str = "pyth"
    max_price_age: int = 7200
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class MonitoringConfig:
    default_threshold: int = 150
    default_frequency_hours: int = 24
    snapshot_capacity: int | None = None


@dataclass(frozen=True)
class PoolConfig:
    """Per-asset parameters applied when a pool is initialized."""

    liquidation_bonus: int = 500
    liquidation_close_factor: int = 5_000
    base_rate_bps: int = 200
    slope1_bps: int = 400
    slope2_bps: int = 6_000
    optimal_utilization_bps: int = 8_000


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class EmailConfig:
    enabled: bool = False
    alert_email: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    email: EmailConfig = field(default_factory=EmailConfig)


@dataclass(frozen=True)
class EngineConfig:
    accrual: AccrualConfig = field(default_factory=AccrualConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    pools: dict[str, PoolConfig] = field(default_factory=dict)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    def pool_config(self, asset: str) -> PoolConfig:
        return self.pools.get(asset, PoolConfig())


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_accrual(raw: dict[str, Any]) -> AccrualConfig:
    return AccrualConfig(
        seconds_per_year=int(raw.get("seconds_per_year", SECONDS_PER_YEAR)),
    )


def _build_oracle(raw: dict[str, Any]) -> OracleConfig:
    pyth_raw = raw.get("pyth", {})
    return OracleConfig(
        provider=raw.get("provider", "pyth"),
        max_price_age=int(raw.get("max_price_age", 7200)),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds={str(k): str(v) for k, v in pyth_raw.get("feeds", {}).items()},
            timeout=int(pyth_raw.get("timeout", 10)),
        ),
    )


def _build_monitoring(raw: dict[str, Any]) -> MonitoringConfig:
    capacity = raw.get("snapshot_capacity")
    return MonitoringConfig(
        default_threshold=int(raw.get("default_threshold", 150)),
        default_frequency_hours=int(raw.get("default_frequency_hours", 24)),
        snapshot_capacity=int(capacity) if capacity is not None else None,
    )


def _build_pools(raw: dict[str, Any]) -> dict[str, PoolConfig]:
    pools: dict[str, PoolConfig] = {}
    for asset, cfg in raw.items():
        cfg = cfg or {}
        pools[str(asset)] = PoolConfig(
            liquidation_bonus=int(cfg.get("liquidation_bonus", 500)),
            liquidation_close_factor=int(cfg.get("liquidation_close_factor", 5_000)),
            base_rate_bps=int(cfg.get("base_rate_bps", 200)),
            slope1_bps=int(cfg.get("slope1_bps", 400)),
            slope2_bps=int(cfg.get("slope2_bps", 6_000)),
            optimal_utilization_bps=int(cfg.get("optimal_utilization_bps", 8_000)),
        )
    return pools


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    em = raw.get("email", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
        email=EmailConfig(
            enabled=bool(em.get("enabled", False)),
            alert_email=em.get("alert_email", ""),
            smtp_server=em.get("smtp_server", "smtp.gmail.com"),
            smtp_port=int(em.get("smtp_port", 587)),
            sender_email=em.get("sender_email", ""),
            sender_password=em.get("sender_password", ""),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> EngineConfig:
    """Load and validate engine configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = EngineConfig(
        accrual=_build_accrual(raw.get("accrual", {})),
        oracle=_build_oracle(raw.get("oracle", {})),
        monitoring=_build_monitoring(raw.get("monitoring", {})),
        pools=_build_pools(raw.get("pools", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def validate(cfg: EngineConfig) -> None:
    """Raise on invalid configuration."""
    if cfg.accrual.seconds_per_year <= 0:
        raise ValueError("seconds_per_year must be positive")

    if cfg.oracle.max_price_age <= 0:
        raise ValueError("max_price_age must be positive")

    monitoring = cfg.monitoring
    if not THRESHOLD_MIN_BPS <= monitoring.default_threshold <= THRESHOLD_MAX_BPS:
        raise ValueError(
            f"default_threshold must be within "
            f"[{THRESHOLD_MIN_BPS}, {THRESHOLD_MAX_BPS}] bps"
        )
    if not FREQUENCY_MIN_HOURS <= monitoring.default_frequency_hours <= FREQUENCY_MAX_HOURS:
        raise ValueError(
            f"default_frequency_hours must be within "
            f"[{FREQUENCY_MIN_HOURS}, {FREQUENCY_MAX_HOURS}]"
        )
    if monitoring.snapshot_capacity is not None and monitoring.snapshot_capacity <= 0:
        raise ValueError("snapshot_capacity must be positive when set")

    for asset, pool in cfg.pools.items():
        if asset not in cfg.oracle.pyth.feeds:
            raise ValueError(f"Pool '{asset}' has no price feed configured")
        if not 1 <= pool.optimal_utilization_bps <= BPS_FULL:
            raise ValueError(
                f"Pool '{asset}' optimal_utilization_bps must be within [1, {BPS_FULL}]"
            )
        for name in ("liquidation_bonus", "liquidation_close_factor"):
            value = getattr(pool, name)
            if not 0 <= value <= BPS_FULL:
                raise ValueError(f"Pool '{asset}' {name} must be within [0, {BPS_FULL}]")
        for name in ("base_rate_bps", "slope1_bps", "slope2_bps"):
            if getattr(pool, name) < 0:
                raise ValueError(f"Pool '{asset}' {name} must not be negative")
