"""Shared test fixtures, fakes and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import pytest_asyncio

from lending_engine.config import (
    EngineConfig,
    MonitoringConfig,
    NotificationsConfig,
    OracleConfig,
    PoolConfig,
    PythConfig,
    TelegramConfig,
)
from lending_engine.custody import InMemoryCustody
from lending_engine.errors import OracleError
from lending_engine.models import (
    AssetLedger,
    HealthAlertEvent,
    Pool,
    Position,
    PriceQuote,
)
from lending_engine.services.engine import LendingEngine
from lending_engine.stores import InMemoryLedgerStore

START_TIME = 1_700_000_000


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: int = START_TIME) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FakeOracle:
    """Serves fixed prices; quotes are published "now" unless overridden."""

    def __init__(self, prices: dict[str, int], clock: FakeClock) -> None:
        self.prices = dict(prices)
        self.publish_times: dict[str, int] = {}
        self.clock = clock
        self.calls = 0

    async def get_price(self, asset: str, max_age: int) -> PriceQuote:
        return (await self.get_prices([asset], max_age))[asset]

    async def get_prices(self, assets: list[str], max_age: int) -> dict[str, PriceQuote]:
        self.calls += 1
        now = self.clock()
        quotes: dict[str, PriceQuote] = {}
        for asset in assets:
            if asset not in self.prices:
                raise OracleError(f"no feed for {asset}", cause=OracleError.UNKNOWN_FEED)
            published = self.publish_times.get(asset, now)
            if now - published > max_age:
                raise OracleError(f"{asset} stale", cause=OracleError.STALE)
            quotes[asset] = PriceQuote(asset=asset, price=self.prices[asset], publish_time=published)
        return quotes


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[HealthAlertEvent] = []

    async def emit(self, event: HealthAlertEvent) -> None:
        self.events.append(event)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pool_config() -> PoolConfig:
    return PoolConfig(
        liquidation_bonus=500,
        liquidation_close_factor=5_000,
        base_rate_bps=200,
        slope1_bps=400,
        slope2_bps=6_000,
        optimal_utilization_bps=8_000,
    )


@pytest.fixture()
def sample_engine_config(sample_pool_config: PoolConfig) -> EngineConfig:
    return EngineConfig(
        oracle=OracleConfig(
            max_price_age=7200,
            pyth=PythConfig(
                hermes_url="https://hermes.example.com/v2/updates/price/latest",
                feeds={"SOL": "aaa111", "USDC": "bbb222"},
            ),
        ),
        monitoring=MonitoringConfig(default_threshold=150, default_frequency_hours=24),
        pools={"SOL": sample_pool_config, "USDC": sample_pool_config},
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True, alert_bot_token="fake-alert-token", chat_id="12345"
            ),
        ),
    )


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def oracle(clock: FakeClock) -> FakeOracle:
    return FakeOracle({"SOL": 150, "USDC": 1}, clock)


@pytest.fixture()
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture()
def custody() -> InMemoryCustody:
    custody = InMemoryCustody()
    for owner in ("alice", "bob", "liquidator"):
        custody.mint(owner, "SOL", 1_000_000)
        custody.mint(owner, "USDC", 10_000_000)
    return custody


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def engine(
    store: InMemoryLedgerStore,
    oracle: FakeOracle,
    custody: InMemoryCustody,
    sink: RecordingSink,
    sample_engine_config: EngineConfig,
    clock: FakeClock,
) -> LendingEngine:
    return LendingEngine(
        store=store,
        oracle=oracle,
        custody=custody,
        alert_sink=sink,
        config=sample_engine_config,
        clock=clock,
    )


@pytest_asyncio.fixture()
async def market(engine: LendingEngine) -> LendingEngine:
    """SOL and USDC pools (threshold 8000, max LTV 7500) plus alice and bob."""
    await engine.init_pool("SOL", liquidation_threshold=8_000, max_ltv=7_500)
    await engine.init_pool("USDC", liquidation_threshold=8_000, max_ltv=7_500)
    await engine.init_position("alice", stable_asset="USDC")
    await engine.init_position("bob", stable_asset="USDC")
    return engine


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_pool() -> Pool:
    return Pool(
        asset="USDC",
        liquidation_threshold=8_000,
        max_loan_to_value=7_500,
        base_rate_bps=200,
        slope1_bps=0,
        slope2_bps=0,
        optimal_utilization_bps=8_000,
        total_deposited=2_000_000,
        total_deposit_shares=2_000_000,
        total_borrowed=1_000_000,
        total_borrowed_shares=1_000_000,
        last_accrual_time=START_TIME,
    )


@pytest.fixture()
def sample_position() -> Position:
    return Position(
        owner="alice",
        stable_asset="USDC",
        ledgers={
            "SOL": AssetLedger(deposited=100, deposit_shares=100),
            "USDC": AssetLedger(borrowed=5_000, borrowed_shares=5_000),
        },
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    accrual:
      seconds_per_year: 31536000
    oracle:
      provider: pyth
      max_price_age: 3600
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {SOL: "aaa", USDC: "bbb"}
    monitoring:
      default_threshold: 200
      default_frequency_hours: 12
      snapshot_capacity: 8
    pools:
      SOL:
        base_rate_bps: 200
        slope1_bps: 400
        slope2_bps: 6000
        optimal_utilization_bps: 8000
      USDC:
        liquidation_bonus: 300
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        chat_id: "999"
      email:
        enabled: false
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
