"""Health monitoring — thresholds, cooldown-gated alerts and snapshots."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..config import (
    FREQUENCY_MAX_HOURS,
    FREQUENCY_MIN_HOURS,
    THRESHOLD_MAX_BPS,
    THRESHOLD_MIN_BPS,
)
from ..errors import InvalidAlertFrequencyError, InvalidThresholdError
from ..models import HealthAlertEvent, HealthSnapshot, Position, Valuation
from ..numeric import SECONDS_PER_HOUR, saturating_add

logger = logging.getLogger(__name__)


def validate_threshold(threshold: int, frequency_hours: int) -> None:
    """Reject out-of-range monitoring settings before anything is changed."""
    if not THRESHOLD_MIN_BPS <= threshold <= THRESHOLD_MAX_BPS:
        raise InvalidThresholdError(f"got {threshold}")
    if not FREQUENCY_MIN_HOURS <= frequency_hours <= FREQUENCY_MAX_HOURS:
        raise InvalidAlertFrequencyError(f"got {frequency_hours}")


def set_threshold(position: Position, threshold: int, frequency_hours: int) -> Position:
    validate_threshold(threshold, frequency_hours)
    monitoring = replace(
        position.monitoring,
        alert_threshold=threshold,
        alert_frequency_hours=frequency_hours,
    )
    return replace(position, monitoring=monitoring)


def set_monitoring(position: Position, enabled: bool, now: int) -> Position:
    return replace(
        position,
        monitoring=replace(position.monitoring, enabled=enabled),
        last_health_check=now,
    )


def whole_hours_between(earlier: int, later: int) -> int:
    """Whole hours from ``earlier`` to ``later``, truncated toward zero."""
    elapsed = later - earlier
    if elapsed >= 0:
        return elapsed // SECONDS_PER_HOUR
    return -((-elapsed) // SECONDS_PER_HOUR)


def alert_due(position: Position, health_factor: int, now: int) -> bool:
    """True when monitoring is on, health is below threshold and the cooldown passed."""
    monitoring = position.monitoring
    if not monitoring.enabled or health_factor >= monitoring.alert_threshold:
        return False
    hours = whole_hours_between(monitoring.last_alert_time, now)
    if hours < monitoring.alert_frequency_hours:
        logger.debug(
            "Alert for %s suppressed: %d h since last alert, cooldown %d h",
            position.owner,
            hours,
            monitoring.alert_frequency_hours,
        )
        return False
    return True


def record_health(
    position: Position, valuation: Valuation, now: int
) -> tuple[Position, HealthAlertEvent | None]:
    """Store the new health factor and decide whether an alert goes out."""
    position = replace(
        position,
        health_factor=valuation.health_factor,
        last_health_check=now,
    )
    if not alert_due(position, valuation.health_factor, now):
        return position, None

    event = HealthAlertEvent(
        owner=position.owner,
        health_factor=valuation.health_factor,
        alert_threshold=position.monitoring.alert_threshold,
        total_collateral_value=valuation.total_collateral_value,
        total_borrowed_value=valuation.total_borrowed_value,
        timestamp=now,
        prices=dict(valuation.prices),
    )
    position = replace(
        position, monitoring=replace(position.monitoring, last_alert_time=now)
    )
    logger.warning(
        "HEALTH ALERT: %s health factor %d below threshold %d",
        position.owner,
        valuation.health_factor,
        position.monitoring.alert_threshold,
    )
    return position, event


def take_snapshot(
    position: Position, valuation: Valuation, now: int
) -> tuple[Position, HealthSnapshot]:
    """Capture a snapshot at the current counter and advance the counter."""
    index = position.monitoring.snapshot_count
    snapshot = HealthSnapshot(
        owner=position.owner,
        index=index,
        health_factor=valuation.health_factor,
        total_collateral_value=valuation.total_collateral_value,
        total_borrowed_value=valuation.total_borrowed_value,
        timestamp=now,
        prices=dict(valuation.prices),
    )
    position = replace(
        position,
        monitoring=replace(
            position.monitoring, snapshot_count=saturating_add(index, 1)
        ),
    )
    return position, snapshot
