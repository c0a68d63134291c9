"""Service modules"""
from .engine import LendingEngine

__all__ = ["LendingEngine"]
