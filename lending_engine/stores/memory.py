"""In-process ledger store."""
from __future__ import annotations

import logging

from ..errors import RecordExistsError, RecordNotFoundError
from ..models import HealthSnapshot, Pool, Position

logger = logging.getLogger(__name__)


class InMemoryLedgerStore:
    """Dict-backed :class:`~lending_engine.interfaces.LedgerStore`.

    Snapshot history is unbounded unless ``snapshot_capacity`` is given, in
    which case each owner's history becomes a ring buffer: snapshot ``n`` is
    stored in slot ``n % snapshot_capacity`` and evicts whatever was there.
    """

    def __init__(self, snapshot_capacity: int | None = None) -> None:
        if snapshot_capacity is not None and snapshot_capacity <= 0:
            raise ValueError("snapshot_capacity must be positive")
        self.snapshot_capacity = snapshot_capacity
        self._pools: dict[str, Pool] = {}
        self._positions: dict[str, Position] = {}
        self._snapshots: dict[tuple[str, int], HealthSnapshot] = {}

    def _slot(self, owner: str, index: int) -> tuple[str, int]:
        if self.snapshot_capacity is None:
            return owner, index
        return owner, index % self.snapshot_capacity

    async def create_pool(self, pool: Pool) -> None:
        if pool.asset in self._pools:
            raise RecordExistsError(f"pool {pool.asset}")
        self._pools[pool.asset] = pool

    async def create_position(self, position: Position) -> None:
        if position.owner in self._positions:
            raise RecordExistsError(f"position {position.owner}")
        self._positions[position.owner] = position

    async def get_pool(self, asset: str) -> Pool:
        try:
            return self._pools[asset]
        except KeyError:
            raise RecordNotFoundError(f"pool {asset}") from None

    async def get_position(self, owner: str) -> Position:
        try:
            return self._positions[owner]
        except KeyError:
            raise RecordNotFoundError(f"position {owner}") from None

    async def get_snapshot(self, owner: str, index: int) -> HealthSnapshot:
        snapshot = self._snapshots.get(self._slot(owner, index))
        if snapshot is None or snapshot.index != index:
            raise RecordNotFoundError(f"snapshot {owner}#{index}")
        return snapshot

    async def list_snapshots(self, owner: str) -> list[HealthSnapshot]:
        return sorted(
            (s for (o, _), s in self._snapshots.items() if o == owner),
            key=lambda s: s.index,
        )

    async def commit(
        self,
        pools: tuple[Pool, ...] = (),
        positions: tuple[Position, ...] = (),
        snapshots: tuple[HealthSnapshot, ...] = (),
    ) -> None:
        """Validate every write first, then apply them all."""
        for pool in pools:
            if pool.asset not in self._pools:
                raise RecordNotFoundError(f"pool {pool.asset}")
        for position in positions:
            if position.owner not in self._positions:
                raise RecordNotFoundError(f"position {position.owner}")
        for snapshot in snapshots:
            if snapshot.owner not in self._positions:
                raise RecordNotFoundError(f"position {snapshot.owner}")
            if self.snapshot_capacity is None and (snapshot.owner, snapshot.index) in self._snapshots:
                raise RecordExistsError(f"snapshot {snapshot.owner}#{snapshot.index}")

        for pool in pools:
            self._pools[pool.asset] = pool
        for position in positions:
            self._positions[position.owner] = position
        for snapshot in snapshots:
            self._snapshots[self._slot(snapshot.owner, snapshot.index)] = snapshot

        logger.debug(
            "Committed %d pool(s), %d position(s), %d snapshot(s)",
            len(pools),
            len(positions),
            len(snapshots),
        )
