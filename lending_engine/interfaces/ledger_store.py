"""Ledger store protocol — record provisioning, addressing and commits."""
from typing import Protocol

from ..models import HealthSnapshot, Pool, Position


class LedgerStore(Protocol):
    """Pools are keyed by asset, positions by owner, snapshots by (owner, index).

    ``get_*`` raise ``RecordNotFoundError`` for unprovisioned records.
    ``commit`` must apply all of its arguments or none of them.
    """

    async def create_pool(self, pool: Pool) -> None: ...

    async def create_position(self, position: Position) -> None: ...

    async def get_pool(self, asset: str) -> Pool: ...

    async def get_position(self, owner: str) -> Position: ...

    async def get_snapshot(self, owner: str, index: int) -> HealthSnapshot: ...

    async def list_snapshots(self, owner: str) -> list[HealthSnapshot]: ...

    async def commit(
        self,
        pools: tuple[Pool, ...] = (),
        positions: tuple[Position, ...] = (),
        snapshots: tuple[HealthSnapshot, ...] = (),
    ) -> None: ...
