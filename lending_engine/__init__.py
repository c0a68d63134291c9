"""Collateralized lending engine: share accounting, interest accrual and health monitoring."""
from .config import EngineConfig, load_config
from .models import HealthSnapshot, Pool, Position, Valuation
from .services import LendingEngine

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "HealthSnapshot",
    "LendingEngine",
    "Pool",
    "Position",
    "Valuation",
    "load_config",
]
