"""Unit tests for data models."""
from __future__ import annotations

import pytest

from lending_engine.models import (
    AssetLedger,
    MonitoringSettings,
    Pool,
    Position,
    vault_account,
)
from lending_engine.numeric import U64_MAX


class TestPool:
    def test_frozen(self, sample_pool: Pool) -> None:
        with pytest.raises(AttributeError):
            sample_pool.total_deposited = 0  # type: ignore[misc]

    def test_available_liquidity(self, sample_pool: Pool) -> None:
        assert sample_pool.available_liquidity == 1_000_000

    def test_available_liquidity_never_negative(self) -> None:
        pool = Pool(
            asset="SOL",
            liquidation_threshold=0,
            max_loan_to_value=0,
            total_deposited=10,
            total_borrowed=15,
        )
        assert pool.available_liquidity == 0

    def test_vault_account(self) -> None:
        assert vault_account("SOL") == "vault:SOL"


class TestPosition:
    def test_defaults(self) -> None:
        p = Position(owner="carol")
        assert p.health_factor == U64_MAX
        assert p.ledgers == {}
        assert p.monitoring == MonitoringSettings()
        assert p.monitoring.alert_threshold == 150
        assert p.monitoring.alert_frequency_hours == 24
        assert p.monitoring.enabled is False

    def test_unknown_asset_has_empty_ledger(self, sample_position: Position) -> None:
        assert sample_position.ledger("BTC").is_empty

    def test_with_ledger_copies(self, sample_position: Position) -> None:
        updated = sample_position.with_ledger("BTC", AssetLedger(deposited=1, deposit_shares=1))
        assert "BTC" not in sample_position.ledgers
        assert updated.ledger("BTC").deposited == 1
        assert updated.ledger("SOL") == sample_position.ledger("SOL")

    def test_held_assets_sorted_and_nonzero(self, sample_position: Position) -> None:
        position = sample_position.with_ledger("BTC", AssetLedger())
        assert position.held_assets() == ("SOL", "USDC")

    def test_equality(self) -> None:
        assert Position(owner="a") == Position(owner="a")
