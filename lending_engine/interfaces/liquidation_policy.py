"""Liquidation policy protocol — chooses repay and seizure amounts."""
from typing import Protocol

from ..models import Pool, Position, SeizurePlan, Valuation


class LiquidationPolicy(Protocol):
    """Decides how much debt a liquidator repays and how much collateral it seizes.

    The engine checks the returned plan against the pools' close factor and
    liquidation bonus before applying it.
    """

    def plan(
        self,
        borrower: Position,
        valuation: Valuation,
        debt_pool: Pool,
        collateral_pool: Pool,
    ) -> SeizurePlan: ...
