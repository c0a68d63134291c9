"""Custody implementations."""
from .memory import InMemoryCustody

__all__ = ["InMemoryCustody"]
