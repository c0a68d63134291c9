"""Lending engine — the operation surface over pools and positions.

Every operation follows the same shape: take the record locks, load the
records, accrue interest on the pool, compute replacement records (shares,
valuation, health), move the underlying assets, commit everything in one
store call and finally hand any alert to the sink. An exception anywhere
before the commit leaves the store untouched.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import replace

from ..config import EngineConfig
from ..custody import InMemoryCustody
from ..errors import (
    InsufficientFundsError,
    LiquidationPolicyError,
    NotUndercollateralizedError,
    OverBorrowableAmountError,
    OverLTVError,
    OverRepayError,
    UnderCollateralizedError,
)
from ..interfaces import AlertSink, Custody, LedgerStore, LiquidationPolicy, PriceOracle
from ..models import (
    HealthAlertEvent,
    HealthSnapshot,
    MonitoringSettings,
    Pool,
    Position,
    SeizurePlan,
    Valuation,
    vault_account,
)
from ..notifications import AlertDispatcher
from ..numeric import BPS_FULL, mul_div, require_amount, saturating_mul
from ..oracles import PythOracle
from ..stores import InMemoryLedgerStore
from . import health_monitor, shares
from .interest import accrue
from .valuation import (
    borrowable_amount,
    fetch_prices,
    loan_to_value_bps,
    value_position,
)

logger = logging.getLogger(__name__)


class LendingEngine:
    """Deposit, borrow, repay, withdraw, liquidate and monitor positions."""

    def __init__(
        self,
        store: LedgerStore,
        oracle: PriceOracle,
        custody: Custody,
        alert_sink: AlertSink | None = None,
        config: EngineConfig | None = None,
        liquidation_policy: LiquidationPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._custody = custody
        self._alert_sink = alert_sink
        self._config = config or EngineConfig()
        self._liquidation_policy = liquidation_policy
        self._clock = clock
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        liquidation_policy: LiquidationPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> LendingEngine:
        """Wire the bundled collaborators: in-memory store/custody, Pyth, notifiers."""
        return cls(
            store=InMemoryLedgerStore(config.monitoring.snapshot_capacity),
            oracle=PythOracle(config.oracle.pyth, clock=clock),
            custody=InMemoryCustody(),
            alert_sink=AlertDispatcher.from_config(config.notifications),
            config=config,
            liquidation_policy=liquidation_policy,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> int:
        return int(self._clock())

    @asynccontextmanager
    async def _locked(self, *keys: str) -> AsyncIterator[None]:
        # Sorted acquisition keeps multi-record operations deadlock free.
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self._locks[key])
            yield

    async def _load_pool(self, asset: str, now: int) -> Pool:
        pool = await self._store.get_pool(asset)
        return accrue(pool, now, self._config.accrual.seconds_per_year)

    async def _prices_for(self, position: Position, extra: Iterable[str] = ()) -> dict[str, int]:
        assets = set(position.held_assets()) | set(extra)
        return await fetch_prices(self._oracle, assets, self._config.oracle.max_price_age)

    async def _emit(self, event: HealthAlertEvent | None) -> None:
        if event is None or self._alert_sink is None:
            return
        try:
            await self._alert_sink.emit(event)
        except Exception as e:
            logger.error("Alert sink failed for %s: %s", event.owner, e)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def init_pool(
        self, asset: str, liquidation_threshold: int, max_ltv: int
    ) -> Pool:
        """Create the pool for ``asset`` using its configured curve parameters."""
        if liquidation_threshold < 0:
            raise ValueError("liquidation_threshold must not be negative")
        if not 0 <= max_ltv <= BPS_FULL:
            raise ValueError(f"max_ltv must be within [0, {BPS_FULL}] bps")

        params = self._config.pool_config(asset)
        pool = Pool(
            asset=asset,
            liquidation_threshold=liquidation_threshold,
            max_loan_to_value=max_ltv,
            liquidation_bonus=params.liquidation_bonus,
            liquidation_close_factor=params.liquidation_close_factor,
            base_rate_bps=params.base_rate_bps,
            slope1_bps=params.slope1_bps,
            slope2_bps=params.slope2_bps,
            optimal_utilization_bps=params.optimal_utilization_bps,
        )
        await self._store.create_pool(pool)
        logger.info(
            "Pool %s initialized (threshold %d, max LTV %d bps)",
            asset,
            liquidation_threshold,
            max_ltv,
        )
        return pool

    async def init_position(self, owner: str, stable_asset: str) -> Position:
        monitoring = self._config.monitoring
        position = Position(
            owner=owner,
            stable_asset=stable_asset,
            last_updated=self._now(),
            monitoring=MonitoringSettings(
                alert_threshold=monitoring.default_threshold,
                alert_frequency_hours=monitoring.default_frequency_hours,
            ),
        )
        await self._store.create_position(position)
        logger.info("Position initialized for %s", owner)
        return position

    # ------------------------------------------------------------------
    # Deposit side
    # ------------------------------------------------------------------

    async def deposit(self, owner: str, asset: str, amount: int) -> Position:
        require_amount(amount)
        event = None
        async with self._locked(f"pool:{asset}", f"position:{owner}"):
            now = self._now()
            pool = await self._load_pool(asset, now)
            position = await self._store.get_position(owner)

            pool, ledger, minted = shares.mint_deposit(pool, position.ledger(asset), amount)
            position = replace(position.with_ledger(asset, ledger), last_updated=now)

            prices = await self._prices_for(position, (asset,))
            valuation = value_position(position, prices)
            position, event = health_monitor.record_health(position, valuation, now)

            await self._custody.move(owner, vault_account(asset), amount, asset)
            await self._store.commit(pools=(pool,), positions=(position,))

        logger.info("%s deposited %d %s (%d shares)", owner, amount, asset, minted)
        await self._emit(event)
        return position

    async def withdraw(self, owner: str, asset: str, amount: int) -> Position:
        require_amount(amount)
        event = None
        async with self._locked(f"pool:{asset}", f"position:{owner}"):
            now = self._now()
            pool = await self._load_pool(asset, now)
            position = await self._store.get_position(owner)
            ledger = position.ledger(asset)

            if amount > ledger.deposited:
                raise InsufficientFundsError(
                    f"{owner} has {ledger.deposited} {asset} deposited, requested {amount}"
                )
            if amount > pool.available_liquidity:
                raise InsufficientFundsError(
                    f"pool {asset} has {pool.available_liquidity} available, requested {amount}"
                )

            prices = await self._prices_for(position, (asset,))
            pool, ledger, burned = shares.burn_deposit(pool, ledger, amount)
            position = replace(position.with_ledger(asset, ledger), last_updated=now)
            valuation = value_position(position, prices)

            if valuation.total_borrowed_value:
                if valuation.health_factor < BPS_FULL:
                    raise UnderCollateralizedError(
                        f"health factor would drop to {valuation.health_factor} bps"
                    )
                ltv = loan_to_value_bps(valuation)
                if ltv > pool.max_loan_to_value:
                    raise OverLTVError(
                        f"LTV would be {ltv} bps, max {pool.max_loan_to_value} bps"
                    )

            position, event = health_monitor.record_health(position, valuation, now)

            await self._custody.move(vault_account(asset), owner, amount, asset)
            await self._store.commit(pools=(pool,), positions=(position,))

        logger.info("%s withdrew %d %s (%d shares burned)", owner, amount, asset, burned)
        await self._emit(event)
        return position

    # ------------------------------------------------------------------
    # Borrow side
    # ------------------------------------------------------------------

    async def borrow(self, owner: str, asset: str, amount: int) -> Position:
        require_amount(amount)
        event = None
        async with self._locked(f"pool:{asset}", f"position:{owner}"):
            now = self._now()
            pool = await self._load_pool(asset, now)
            position = await self._store.get_position(owner)

            prices = await self._prices_for(position, (asset,))
            collateral_value = value_position(position, prices).total_collateral_value
            borrowable = borrowable_amount(collateral_value, pool.liquidation_threshold)
            if amount > borrowable:
                raise OverBorrowableAmountError(
                    f"requested {amount} {asset}, borrowable {borrowable}"
                )
            if amount > pool.available_liquidity:
                raise InsufficientFundsError(
                    f"pool {asset} has {pool.available_liquidity} available, requested {amount}"
                )

            pool, ledger, minted = shares.mint_borrow(pool, position.ledger(asset), amount)
            position = replace(position.with_ledger(asset, ledger), last_updated=now)
            valuation = value_position(position, prices)
            position, event = health_monitor.record_health(position, valuation, now)

            await self._custody.move(vault_account(asset), owner, amount, asset)
            await self._store.commit(pools=(pool,), positions=(position,))

        logger.info("%s borrowed %d %s (%d shares)", owner, amount, asset, minted)
        await self._emit(event)
        return position

    async def repay(self, owner: str, asset: str, amount: int) -> Position:
        require_amount(amount)
        event = None
        async with self._locked(f"pool:{asset}", f"position:{owner}"):
            now = self._now()
            pool = await self._load_pool(asset, now)
            position = await self._store.get_position(owner)
            ledger = position.ledger(asset)

            owed = shares.debt_owed(pool, ledger)
            if amount > owed:
                raise OverRepayError(f"owes {owed} {asset}, tried to repay {amount}")

            prices = await self._prices_for(position, (asset,))
            pool, ledger, burned = shares.burn_borrow(pool, ledger, amount)
            position = replace(position.with_ledger(asset, ledger), last_updated=now)
            valuation = value_position(position, prices)
            position, event = health_monitor.record_health(position, valuation, now)

            await self._custody.move(owner, vault_account(asset), amount, asset)
            await self._store.commit(pools=(pool,), positions=(position,))

        logger.info("%s repaid %d %s (%d shares burned)", owner, amount, asset, burned)
        await self._emit(event)
        return position

    async def debt_of(self, owner: str, asset: str) -> int:
        """Debt currently owed by ``owner`` in ``asset``, interest included."""
        async with self._locked(f"pool:{asset}", f"position:{owner}"):
            pool = await self._load_pool(asset, self._now())
            position = await self._store.get_position(owner)
            return shares.debt_owed(pool, position.ledger(asset))

    # ------------------------------------------------------------------
    # Liquidation
    # ------------------------------------------------------------------

    @staticmethod
    def _check_plan(
        plan: SeizurePlan,
        borrower: Position,
        prices: dict[str, int],
        debt_pool: Pool,
        collateral_pool: Pool,
    ) -> None:
        """Hold a policy's plan to the close factor and the liquidation bonus."""
        for name in ("repay_amount", "seize_amount"):
            try:
                require_amount(getattr(plan, name), name)
            except ValueError as e:
                raise LiquidationPolicyError(str(e)) from e

        owed = shares.debt_owed(debt_pool, borrower.ledger(debt_pool.asset))
        max_repay = mul_div(owed, debt_pool.liquidation_close_factor, BPS_FULL)
        if plan.repay_amount > max_repay:
            raise LiquidationPolicyError(
                f"repay {plan.repay_amount} exceeds close factor limit {max_repay}"
            )

        collateral = borrower.ledger(collateral_pool.asset).deposited
        if plan.seize_amount > collateral:
            raise LiquidationPolicyError(
                f"seize {plan.seize_amount} exceeds deposited collateral {collateral}"
            )

        repaid_value = saturating_mul(prices[debt_pool.asset], plan.repay_amount)
        seized_value = saturating_mul(prices[collateral_pool.asset], plan.seize_amount)
        max_seized_value = mul_div(
            repaid_value, BPS_FULL + collateral_pool.liquidation_bonus, BPS_FULL
        )
        if seized_value > max_seized_value:
            raise LiquidationPolicyError(
                f"seized value {seized_value} exceeds bonus limit {max_seized_value}"
            )

        if plan.seize_amount > collateral_pool.available_liquidity:
            raise InsufficientFundsError(
                f"pool {collateral_pool.asset} cannot release {plan.seize_amount}"
            )

    async def liquidate(
        self,
        liquidator: str,
        borrower: str,
        debt_asset: str,
        collateral_asset: str,
    ) -> SeizurePlan:
        """Repay part of an under-collateralized position's debt and seize collateral.

        The amounts come from the configured liquidation policy.
        """
        if debt_asset == collateral_asset:
            raise ValueError("debt and collateral assets must differ")

        event = None
        async with self._locked(
            f"pool:{debt_asset}", f"pool:{collateral_asset}", f"position:{borrower}"
        ):
            now = self._now()
            debt_pool = await self._load_pool(debt_asset, now)
            collateral_pool = await self._load_pool(collateral_asset, now)
            position = await self._store.get_position(borrower)

            prices = await self._prices_for(position, (debt_asset, collateral_asset))
            valuation = value_position(position, prices)
            if valuation.health_factor >= BPS_FULL:
                raise NotUndercollateralizedError(
                    f"{borrower} health factor is {valuation.health_factor} bps"
                )
            if self._liquidation_policy is None:
                raise LiquidationPolicyError("no liquidation policy configured")

            plan = self._liquidation_policy.plan(
                position, valuation, debt_pool, collateral_pool
            )
            self._check_plan(plan, position, prices, debt_pool, collateral_pool)

            debt_pool, debt_ledger, _ = shares.burn_borrow(
                debt_pool, position.ledger(debt_asset), plan.repay_amount
            )
            collateral_pool, collateral_ledger, _ = shares.burn_deposit(
                collateral_pool, position.ledger(collateral_asset), plan.seize_amount
            )
            position = position.with_ledger(debt_asset, debt_ledger)
            position = replace(
                position.with_ledger(collateral_asset, collateral_ledger),
                last_updated=now,
            )
            valuation = value_position(position, prices)
            position, event = health_monitor.record_health(position, valuation, now)

            await self._custody.move(
                liquidator, vault_account(debt_asset), plan.repay_amount, debt_asset
            )
            try:
                await self._custody.move(
                    vault_account(collateral_asset),
                    liquidator,
                    plan.seize_amount,
                    collateral_asset,
                )
            except Exception:
                logger.error(
                    "Seizure of %d %s failed, returning %d %s to %s",
                    plan.seize_amount,
                    collateral_asset,
                    plan.repay_amount,
                    debt_asset,
                    liquidator,
                )
                await self._custody.move(
                    vault_account(debt_asset), liquidator, plan.repay_amount, debt_asset
                )
                raise
            await self._store.commit(
                pools=(debt_pool, collateral_pool), positions=(position,)
            )

        logger.info(
            "%s liquidated %s: repaid %d %s, seized %d %s",
            liquidator,
            borrower,
            plan.repay_amount,
            debt_asset,
            plan.seize_amount,
            collateral_asset,
        )
        await self._emit(event)
        return plan

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    async def _set_monitoring(self, owner: str, enabled: bool) -> Position:
        async with self._locked(f"position:{owner}"):
            position = await self._store.get_position(owner)
            position = health_monitor.set_monitoring(position, enabled, self._now())
            await self._store.commit(positions=(position,))
        logger.info(
            "Health monitoring %s for %s", "enabled" if enabled else "disabled", owner
        )
        return position

    async def enable_monitoring(self, owner: str) -> Position:
        return await self._set_monitoring(owner, True)

    async def disable_monitoring(self, owner: str) -> Position:
        return await self._set_monitoring(owner, False)

    async def set_threshold(
        self, owner: str, threshold: int, frequency_hours: int
    ) -> Position:
        health_monitor.validate_threshold(threshold, frequency_hours)
        async with self._locked(f"position:{owner}"):
            position = await self._store.get_position(owner)
            position = health_monitor.set_threshold(position, threshold, frequency_hours)
            await self._store.commit(positions=(position,))
        logger.info(
            "Health threshold for %s set to %d bps, alert frequency %d h",
            owner,
            threshold,
            frequency_hours,
        )
        return position

    async def check_health(self, owner: str) -> Valuation:
        """Revalue the position, store its health factor and alert if due."""
        event = None
        async with self._locked(f"position:{owner}"):
            now = self._now()
            position = await self._store.get_position(owner)
            valuation = value_position(position, await self._prices_for(position))
            position, event = health_monitor.record_health(position, valuation, now)
            await self._store.commit(positions=(position,))

        logger.info("Health factor for %s: %d bps", owner, valuation.health_factor)
        await self._emit(event)
        return valuation

    async def create_snapshot(self, owner: str) -> HealthSnapshot:
        async with self._locked(f"position:{owner}"):
            now = self._now()
            position = await self._store.get_position(owner)
            valuation = value_position(position, await self._prices_for(position))
            position, snapshot = health_monitor.take_snapshot(position, valuation, now)
            position = replace(
                position, health_factor=valuation.health_factor, last_health_check=now
            )
            await self._store.commit(positions=(position,), snapshots=(snapshot,))

        logger.info(
            "Health snapshot #%d for %s: %d bps",
            snapshot.index,
            owner,
            snapshot.health_factor,
        )
        return snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_pool(self, asset: str) -> Pool:
        return await self._store.get_pool(asset)

    async def get_position(self, owner: str) -> Position:
        return await self._store.get_position(owner)

    async def get_snapshot(self, owner: str, index: int) -> HealthSnapshot:
        return await self._store.get_snapshot(owner, index)

    async def list_snapshots(self, owner: str) -> list[HealthSnapshot]:
        return await self._store.list_snapshots(owner)
