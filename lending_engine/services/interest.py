"""Interest accrual — utilization, kinked borrow rate, time-weighted accrual."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..models import Pool
from ..numeric import (
    BPS_FULL,
    SECONDS_PER_YEAR,
    mul_div,
    saturating_add,
    saturating_sub,
)

logger = logging.getLogger(__name__)


def utilization_bps(pool: Pool) -> int:
    """Share of deposits currently borrowed, in bps (truncated)."""
    if pool.total_deposited == 0:
        return 0
    if pool.total_borrowed >= pool.total_deposited:
        return BPS_FULL
    return mul_div(pool.total_borrowed, BPS_FULL, pool.total_deposited)


def rate_at_utilization(pool: Pool, util_bps: int) -> int:
    """Borrow APR in bps for a given utilization, using ``pool``'s curve."""
    optimal = pool.optimal_utilization_bps
    if util_bps <= optimal:
        slope_contrib = mul_div(pool.slope1_bps, util_bps, max(optimal, 1))
        return saturating_add(pool.base_rate_bps, slope_contrib)

    over_bps = saturating_sub(util_bps, optimal)
    denom = max(saturating_sub(BPS_FULL, optimal), 1)
    slope2_contrib = mul_div(pool.slope2_bps, over_bps, denom)
    return saturating_add(
        saturating_add(pool.base_rate_bps, pool.slope1_bps), slope2_contrib
    )


def borrow_rate_bps(pool: Pool) -> int:
    """Current borrow APR in bps (kinked at the optimal utilization)."""
    return rate_at_utilization(pool, utilization_bps(pool))


def compute_interest(
    total_borrowed: int,
    rate_bps: int,
    elapsed: int,
    seconds_per_year: int = SECONDS_PER_YEAR,
) -> int:
    """Simple interest for ``elapsed`` seconds at ``rate_bps`` APR."""
    annual = mul_div(total_borrowed, rate_bps, BPS_FULL)
    return mul_div(annual, elapsed, seconds_per_year)


def accrue(pool: Pool, now: int, seconds_per_year: int = SECONDS_PER_YEAR) -> Pool:
    """Return ``pool`` with interest accrued up to ``now``.

    Shares are left untouched so each borrow share represents more debt.
    The first call only records the accrual time.
    """
    if pool.last_accrual_time == 0:
        return replace(pool, last_accrual_time=now)
    if now <= pool.last_accrual_time:
        return pool
    if pool.total_borrowed == 0:
        return replace(pool, last_accrual_time=now)

    elapsed = now - pool.last_accrual_time
    rate = borrow_rate_bps(pool)
    interest = compute_interest(pool.total_borrowed, rate, elapsed, seconds_per_year)

    if interest > 0:
        logger.debug(
            "Accrued %d interest on %s (rate %d bps, %d s elapsed)",
            interest,
            pool.asset,
            rate,
            elapsed,
        )

    return replace(
        pool,
        total_borrowed=saturating_add(pool.total_borrowed, interest),
        last_accrual_time=now,
    )
