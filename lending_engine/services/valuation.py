"""Collateral valuation and health factor — shared by every operation."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from ..errors import OracleError
from ..interfaces.price_oracle import PriceOracle
from ..models import Position, Valuation
from ..numeric import BPS_FULL, U64_MAX, mul_div, saturating_add, saturating_mul

logger = logging.getLogger(__name__)

# Health factor reported for a position without debt.
HEALTH_FACTOR_MAX = U64_MAX


def health_factor(total_collateral_value: int, total_borrowed_value: int) -> int:
    """Collateral / debt in bps; 10000 means exactly collateralized."""
    if total_borrowed_value == 0:
        return HEALTH_FACTOR_MAX
    # The sentinel is reserved for debt-free positions.
    return min(
        mul_div(total_collateral_value, BPS_FULL, total_borrowed_value),
        HEALTH_FACTOR_MAX - 1,
    )


def loan_to_value_bps(valuation: Valuation) -> int:
    """Debt / collateral in bps; U64_MAX when there is debt but no collateral."""
    if valuation.total_borrowed_value == 0:
        return 0
    if valuation.total_collateral_value == 0:
        return U64_MAX
    return mul_div(
        valuation.total_borrowed_value, BPS_FULL, valuation.total_collateral_value
    )


def borrowable_amount(total_collateral_value: int, liquidation_threshold: int) -> int:
    """Upper bound for a new borrow.

    The threshold multiplies the collateral value as stored, without a bps
    denominator.
    """
    return saturating_mul(total_collateral_value, liquidation_threshold)


def value_position(position: Position, prices: dict[str, int]) -> Valuation:
    """Price every held asset and derive the health factor.

    Raises:
        OracleError: a held asset has no price in ``prices``.
    """
    collateral = 0
    borrowed = 0
    used: dict[str, int] = {}

    for asset in position.held_assets():
        if asset not in prices:
            raise OracleError(f"no price for {asset}", cause=OracleError.UNKNOWN_FEED)
        price = prices[asset]
        ledger = position.ledger(asset)
        collateral = saturating_add(collateral, saturating_mul(price, ledger.deposited))
        borrowed = saturating_add(borrowed, saturating_mul(price, ledger.borrowed))
        used[asset] = price

    return Valuation(
        total_collateral_value=collateral,
        total_borrowed_value=borrowed,
        health_factor=health_factor(collateral, borrowed),
        prices=used,
    )


async def fetch_prices(
    oracle: PriceOracle, assets: Iterable[str], max_age: int
) -> dict[str, int]:
    """Fetch one fresh price per asset. Any failure aborts with OracleError."""
    wanted = sorted(set(assets))
    if not wanted:
        return {}
    try:
        quotes = await oracle.get_prices(wanted, max_age)
    except OracleError as e:
        logger.warning("Price lookup failed (%s): %s", e.cause, e)
        raise

    missing = [asset for asset in wanted if asset not in quotes]
    if missing:
        raise OracleError(
            f"oracle returned no quote for {', '.join(missing)}",
            cause=OracleError.UNKNOWN_FEED,
        )
    return {asset: quotes[asset].price for asset in wanted}
