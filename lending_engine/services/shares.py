"""Share accounting for the deposit and borrow sides of a pool.

Deposit shares mint rounded down and borrow shares mint rounded up, so a new
claim is never worth more than what was paid in and a new debt never owes
less than what was lent. Burning rounds up on both sides. All functions are
pure: they take the current pool/ledger and return replacements.
"""
from __future__ import annotations

from dataclasses import replace

from ..models import AssetLedger, Pool
from ..numeric import mul_div, saturating_add, saturating_sub


def shares_for_deposit(pool: Pool, amount: int) -> int:
    """Deposit shares minted for ``amount`` (1:1 while the pool is empty)."""
    if pool.total_deposited == 0 or pool.total_deposit_shares == 0:
        return amount
    return mul_div(amount, pool.total_deposit_shares, pool.total_deposited)


def shares_for_borrow(pool: Pool, amount: int) -> int:
    """Borrow shares minted for ``amount`` (1:1 while there is no debt)."""
    if pool.total_borrowed == 0:
        return amount
    return mul_div(
        amount, pool.total_borrowed_shares, pool.total_borrowed, round_up=True
    )


def debt_owed(pool: Pool, ledger: AssetLedger) -> int:
    """Current debt represented by the ledger's borrow shares, rounded up."""
    if ledger.borrowed_shares == 0:
        return 0
    return mul_div(
        ledger.borrowed_shares,
        pool.total_borrowed,
        pool.total_borrowed_shares,
        round_up=True,
    )


def _settle(pool: Pool) -> Pool:
    # A drained deposit side holds no shares; debt nobody holds shares for is dust.
    if pool.total_deposited == 0:
        pool = replace(pool, total_deposited=0, total_deposit_shares=0)
    if pool.total_borrowed == 0 or pool.total_borrowed_shares == 0:
        pool = replace(pool, total_borrowed=0, total_borrowed_shares=0)
    return pool


def mint_deposit(
    pool: Pool, ledger: AssetLedger, amount: int
) -> tuple[Pool, AssetLedger, int]:
    minted = shares_for_deposit(pool, amount)
    pool = replace(
        pool,
        total_deposited=saturating_add(pool.total_deposited, amount),
        total_deposit_shares=saturating_add(pool.total_deposit_shares, minted),
    )
    ledger = replace(
        ledger,
        deposited=saturating_add(ledger.deposited, amount),
        deposit_shares=saturating_add(ledger.deposit_shares, minted),
    )
    return pool, ledger, minted


def mint_borrow(
    pool: Pool, ledger: AssetLedger, amount: int
) -> tuple[Pool, AssetLedger, int]:
    minted = shares_for_borrow(pool, amount)
    pool = replace(
        pool,
        total_borrowed=saturating_add(pool.total_borrowed, amount),
        total_borrowed_shares=saturating_add(pool.total_borrowed_shares, minted),
    )
    ledger = replace(
        ledger,
        borrowed=saturating_add(ledger.borrowed, amount),
        borrowed_shares=saturating_add(ledger.borrowed_shares, minted),
    )
    return pool, ledger, minted


def burn_deposit(
    pool: Pool, ledger: AssetLedger, amount: int
) -> tuple[Pool, AssetLedger, int]:
    """Remove ``amount`` from the deposit side. Caller checks ``amount <= deposited``."""
    if amount >= ledger.deposited:
        burned = ledger.deposit_shares
    else:
        burned = min(
            mul_div(amount, pool.total_deposit_shares, pool.total_deposited, round_up=True),
            ledger.deposit_shares,
        )
    pool = _settle(
        replace(
            pool,
            total_deposited=saturating_sub(pool.total_deposited, amount),
            total_deposit_shares=saturating_sub(pool.total_deposit_shares, burned),
        )
    )
    ledger = replace(
        ledger,
        deposited=saturating_sub(ledger.deposited, amount),
        deposit_shares=saturating_sub(ledger.deposit_shares, burned),
    )
    return pool, ledger, burned


def burn_borrow(
    pool: Pool, ledger: AssetLedger, amount: int
) -> tuple[Pool, AssetLedger, int]:
    """Remove ``amount`` of debt. Caller checks ``amount <= debt_owed``."""
    if amount >= debt_owed(pool, ledger):
        burned = ledger.borrowed_shares
    else:
        burned = min(
            mul_div(amount, pool.total_borrowed_shares, pool.total_borrowed, round_up=True),
            ledger.borrowed_shares,
        )
    pool = _settle(
        replace(
            pool,
            total_borrowed=saturating_sub(pool.total_borrowed, amount),
            total_borrowed_shares=saturating_sub(pool.total_borrowed_shares, burned),
        )
    )
    remaining_shares = saturating_sub(ledger.borrowed_shares, burned)
    ledger = replace(
        ledger,
        borrowed=saturating_sub(ledger.borrowed, amount) if remaining_shares else 0,
        borrowed_shares=remaining_shares,
    )
    return pool, ledger, burned
