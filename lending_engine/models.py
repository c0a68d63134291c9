"""Data models — all frozen (immutable).

Operations never mutate a record in place: they build replacement values
with :func:`dataclasses.replace` and hand them to the store in one commit.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace

from .numeric import U64_MAX

DEFAULT_ALERT_THRESHOLD = 150
DEFAULT_ALERT_FREQUENCY_HOURS = 24


def vault_account(asset: str) -> str:
    """Custody account owned by the pool for ``asset``."""
    return f"vault:{asset}"


@dataclass(frozen=True)
class Pool:
    """Aggregate ledger for one supported asset."""

    asset: str
    liquidation_threshold: int
    max_loan_to_value: int
    liquidation_bonus: int = 0
    liquidation_close_factor: int = 0
    base_rate_bps: int = 0
    slope1_bps: int = 0
    slope2_bps: int = 0
    optimal_utilization_bps: int = 8_000
    total_deposited: int = 0
    total_deposit_shares: int = 0
    total_borrowed: int = 0
    total_borrowed_shares: int = 0
    last_accrual_time: int = 0

    @property
    def available_liquidity(self) -> int:
        return max(self.total_deposited - self.total_borrowed, 0)


@dataclass(frozen=True)
class AssetLedger:
    """A position's holdings in a single asset."""

    deposited: int = 0
    deposit_shares: int = 0
    borrowed: int = 0
    borrowed_shares: int = 0

    @property
    def is_empty(self) -> bool:
        return not (
            self.deposited or self.deposit_shares or self.borrowed or self.borrowed_shares
        )


@dataclass(frozen=True)
class MonitoringSettings:
    alert_threshold: int = DEFAULT_ALERT_THRESHOLD
    alert_frequency_hours: int = DEFAULT_ALERT_FREQUENCY_HOURS
    enabled: bool = False
    last_alert_time: int = 0
    snapshot_count: int = 0


@dataclass(frozen=True)
class Position:
    """One user's deposits, debts and monitoring state across all assets."""

    owner: str
    stable_asset: str = ""
    ledgers: dict[str, AssetLedger] = field(default_factory=dict)
    health_factor: int = U64_MAX
    last_updated: int = 0
    last_health_check: int = 0
    monitoring: MonitoringSettings = field(default_factory=MonitoringSettings)

    def ledger(self, asset: str) -> AssetLedger:
        return self.ledgers.get(asset, AssetLedger())

    def with_ledger(self, asset: str, ledger: AssetLedger) -> Position:
        ledgers = dict(self.ledgers)
        ledgers[asset] = ledger
        return replace(self, ledgers=ledgers)

    def held_assets(self) -> tuple[str, ...]:
        """Assets with a nonzero deposited or borrowed amount, sorted."""
        return tuple(
            sorted(
                asset
                for asset, ledger in self.ledgers.items()
                if ledger.deposited or ledger.borrowed
            )
        )


@dataclass(frozen=True)
class PriceQuote:
    """A single oracle observation; ``price`` is in raw feed units."""

    asset: str
    price: int
    publish_time: int
    expo: int = 0
    feed_id: str = ""


@dataclass(frozen=True)
class Valuation:
    total_collateral_value: int
    total_borrowed_value: int
    health_factor: int
    prices: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthSnapshot:
    """Immutable point-in-time record, addressed by ``(owner, index)``."""

    owner: str
    index: int
    health_factor: int
    total_collateral_value: int
    total_borrowed_value: int
    timestamp: int
    prices: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class HealthAlertEvent:
    owner: str
    health_factor: int
    alert_threshold: int
    total_collateral_value: int
    total_borrowed_value: int
    timestamp: int
    prices: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SeizurePlan:
    """Amounts chosen by a liquidation policy, in debt/collateral asset units."""

    repay_amount: int
    seize_amount: int
