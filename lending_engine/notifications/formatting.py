"""Human-readable rendering of health alerts."""
from __future__ import annotations

from datetime import datetime, timezone

from ..models import HealthAlertEvent
from ..numeric import BPS_FULL, U64_MAX


def format_owner(owner: str) -> str:
    if len(owner) > 16:
        return f"{owner[:10]}...{owner[-6:]}"
    return owner


def format_health_factor(health_factor: int) -> str:
    """Render a bps health factor as a ratio, e.g. 12500 -> '1.25'."""
    if health_factor == U64_MAX:
        return "∞"
    return f"{health_factor / BPS_FULL:.2f}"


def _format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S"
    )


def alert_subject(event: HealthAlertEvent) -> str:
    if event.health_factor < BPS_FULL:
        return "🚨 CRITICAL: Liquidation Risk!"
    return "⚠️ WARNING: Health factor below threshold"


def build_alert_message(event: HealthAlertEvent) -> str:
    status = "🚨 CRITICAL" if event.health_factor < BPS_FULL else "⚠️ WARNING"
    prices = ", ".join(f"{asset} {price}" for asset, price in sorted(event.prices.items()))
    return (
        f"{status} — HF {format_health_factor(event.health_factor)}\n"
        f"\n"
        f"Position: {format_owner(event.owner)}\n"
        f"\n"
        f"Collateral value: {event.total_collateral_value:,}\n"
        f"Borrowed value: {event.total_borrowed_value:,}\n"
        f"\n"
        f"Health Factor: {event.health_factor} bps\n"
        f"Alert Threshold: {event.alert_threshold} bps\n"
        f"Prices: {prices or '—'}\n"
        f"\n"
        f"⚠️ Add collateral or repay debt to restore health.\n"
        f"\n"
        f"{_format_time(event.timestamp)} UTC"
    )
