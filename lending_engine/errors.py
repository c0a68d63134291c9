"""Error kinds raised by the lending engine.

Every error is terminal for the operation that raised it: nothing is
committed and the exception reaches the caller unchanged.
"""
from __future__ import annotations


class LendingError(Exception):
    """Base class for all engine errors."""

    message = "Lending operation failed."

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.message} {detail}".strip())


class OverLTVError(LendingError):
    message = "Borrowed amount exceeds the maximum LTV."


class UnderCollateralizedError(LendingError):
    message = "Borrowed amount results in an under collateralized loan."


class InsufficientFundsError(LendingError):
    message = "Insufficient funds to withdraw."


class OverRepayError(LendingError):
    message = "Attempting to repay more than borrowed."


class OverBorrowableAmountError(LendingError):
    message = "Attempting to borrow more than allowed."


class NotUndercollateralizedError(LendingError):
    message = "User is not undercollateralized."


class OracleError(LendingError):
    """Price lookup failed.

    Callers only ever see one error kind; ``cause`` keeps the reason
    (``unknown_feed``, ``stale``, ``malformed`` or ``lookup_failed``)
    for logs and diagnostics.
    """

    message = "Oracle price error."

    UNKNOWN_FEED = "unknown_feed"
    STALE = "stale"
    MALFORMED = "malformed"
    LOOKUP_FAILED = "lookup_failed"

    def __init__(self, detail: str = "", cause: str = LOOKUP_FAILED) -> None:
        self.cause = cause
        super().__init__(detail)


class InvalidThresholdError(LendingError):
    message = "Invalid health factor threshold. Must be between 110-300 bps."


class InvalidAlertFrequencyError(LendingError):
    message = "Invalid alert frequency. Must be between 1-168 hours."


class RecordNotFoundError(LendingError):
    message = "Record not provisioned."


class RecordExistsError(LendingError):
    message = "Record already provisioned."


class LiquidationPolicyError(LendingError):
    message = "Liquidation plan rejected."
