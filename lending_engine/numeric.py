"""Fixed-width integer helpers — u64 semantics on top of Python ints.

Amounts, shares, prices and values all live in the unsigned 64-bit range.
Intermediate products are computed with unbounded ints (the "widened" type)
and only the final result is clamped back into range.
"""
from __future__ import annotations

U64_MAX = 2**64 - 1
BPS_FULL = 10_000
SECONDS_PER_YEAR = 31_536_000
SECONDS_PER_HOUR = 3_600


def clamp_u64(value: int) -> int:
    """Clamp into [0, U64_MAX]."""
    if value < 0:
        return 0
    if value > U64_MAX:
        return U64_MAX
    return value


def saturating_add(a: int, b: int) -> int:
    return clamp_u64(a + b)


def saturating_sub(a: int, b: int) -> int:
    return clamp_u64(a - b)


def saturating_mul(a: int, b: int) -> int:
    return clamp_u64(a * b)


def mul_div(a: int, b: int, denominator: int, *, round_up: bool = False) -> int:
    """Return ``a * b / denominator`` as one multiply-then-divide.

    A zero denominator is the checked-division failure case; the result
    falls back to 0 rather than raising. The quotient is clamped to u64.
    """
    if denominator == 0:
        return 0
    product = a * b
    if round_up:
        quotient = -(-product // denominator)
    else:
        quotient = product // denominator
    return clamp_u64(quotient)


def require_amount(amount: int, name: str = "amount") -> int:
    """Validate a caller-supplied amount: a positive int within u64."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{name} must be an integer, got {type(amount).__name__}")
    if amount <= 0 or amount > U64_MAX:
        raise ValueError(f"{name} must be in [1, {U64_MAX}], got {amount}")
    return amount
