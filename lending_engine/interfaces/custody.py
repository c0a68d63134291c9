"""Custody protocol — movement of underlying assets."""
from typing import Protocol


class Custody(Protocol):
    """Moves ``amount`` of ``asset`` between two accounts.

    Pool-owned accounts are named by ``models.vault_account(asset)``.
    """

    async def move(
        self, source: str, destination: str, amount: int, asset: str
    ) -> None: ...
