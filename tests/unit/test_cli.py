"""Unit tests for CLI argument parsing and output rendering."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from lending_engine.cli import _run, build_parser, render_rates
from lending_engine.config import EngineConfig
from lending_engine.errors import OracleError
from lending_engine.models import PriceQuote


class TestBuildParser:
    def test_rates_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["rates"])
        assert args.command == "rates"
        assert args.asset is None

    def test_rates_single_asset(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["rates", "SOL"])
        assert args.asset == "SOL"

    def test_prices_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["prices", "SOL", "USDC"])
        assert args.command == "prices"
        assert args.assets == ["SOL", "USDC"]

    def test_prices_default_all(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["prices"])
        assert args.assets == []

    def test_config_flag(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["--config", "/tmp/c.yaml", "rates"])
        assert args.config == "/tmp/c.yaml"

    def test_log_level_flag(self) -> None:
        parser = build_parser()
        args = parser.parse_args(["--log-level", "DEBUG", "rates"])
        assert args.log_level == "DEBUG"

    def test_no_command(self) -> None:
        parser = build_parser()
        args = parser.parse_args([])
        assert args.command is None


class TestRenderRates:
    def test_marks_kink(self, sample_engine_config: EngineConfig) -> None:
        output = render_rates(sample_engine_config, "SOL")
        assert "SOL (optimal 80.00%)" in output
        assert "APR   6.00% ◀ kink" in output
        assert "USDC" not in output

    def test_curve_endpoints(self, sample_engine_config: EngineConfig) -> None:
        output = render_rates(sample_engine_config, "SOL")
        assert "U   0.00%  →  APR   2.00%" in output
        assert "U 100.00%  →  APR  66.00%" in output

    def test_all_pools(self, sample_engine_config: EngineConfig) -> None:
        output = render_rates(sample_engine_config)
        assert "SOL" in output and "USDC" in output

    def test_no_pools(self) -> None:
        assert render_rates(EngineConfig()) == "No pools configured."


class TestRun:
    def test_rates(self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        args = build_parser().parse_args(["--config", str(sample_yaml_path), "rates", "SOL"])
        assert _run(args) == 0
        assert "◀ kink" in capsys.readouterr().out

    def test_rates_unknown_pool(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        args = build_parser().parse_args(["--config", str(sample_yaml_path), "rates", "BTC"])
        assert _run(args) == 1
        assert "Unknown pool: BTC" in capsys.readouterr().err

    def test_prices(self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        quotes = {
            "SOL": PriceQuote(asset="SOL", price=15_000_000_000, publish_time=1, expo=-8),
        }
        args = build_parser().parse_args(["--config", str(sample_yaml_path), "prices", "SOL"])
        with patch(
            "lending_engine.cli.PythOracle.get_prices", new=AsyncMock(return_value=quotes)
        ):
            assert _run(args) == 0
        assert "150.000000" in capsys.readouterr().out

    def test_prices_oracle_error(
        self, sample_yaml_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        args = build_parser().parse_args(["--config", str(sample_yaml_path), "prices"])
        error = OracleError("too old", cause=OracleError.STALE)
        with patch(
            "lending_engine.cli.PythOracle.get_prices", new=AsyncMock(side_effect=error)
        ):
            assert _run(args) == 1
        assert "Oracle error (stale)" in capsys.readouterr().err
