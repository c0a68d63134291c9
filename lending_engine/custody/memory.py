"""In-process custody ledger for underlying asset balances."""
from __future__ import annotations

import logging
from collections import defaultdict

from ..errors import InsufficientFundsError
from ..numeric import require_amount

logger = logging.getLogger(__name__)


class InMemoryCustody:
    """Tracks token balances per (account, asset) and moves them on request."""

    def __init__(self) -> None:
        self._balances: defaultdict[tuple[str, str], int] = defaultdict(int)

    def balance(self, account: str, asset: str) -> int:
        return self._balances[(account, asset)]

    def mint(self, account: str, asset: str, amount: int) -> None:
        """Credit ``account`` out of thin air (funding wallets in tests/demos)."""
        require_amount(amount)
        self._balances[(account, asset)] += amount

    async def move(self, source: str, destination: str, amount: int, asset: str) -> None:
        require_amount(amount)
        available = self._balances[(source, asset)]
        if available < amount:
            raise InsufficientFundsError(
                f"{source} holds {available} {asset}, needs {amount}"
            )
        self._balances[(source, asset)] = available - amount
        self._balances[(destination, asset)] += amount
        logger.debug("Moved %d %s from %s to %s", amount, asset, source, destination)
