"""Ledger store implementations."""
from .memory import InMemoryLedgerStore

__all__ = ["InMemoryLedgerStore"]
