"""Protocol interfaces for the lending engine's collaborators."""
from .custody import Custody
from .ledger_store import LedgerStore
from .liquidation_policy import LiquidationPolicy
from .notifier import AlertSink, Notifier
from .price_oracle import PriceOracle

__all__ = [
    "AlertSink",
    "Custody",
    "LedgerStore",
    "LiquidationPolicy",
    "Notifier",
    "PriceOracle",
]
