"""
errors.py - Error taxonomy and result values for escrow operations.

Every public escrow operation returns a Result instead of raising. A failed
Result carries exactly one ErrorCode; the numeric values match the codes
external callers of the purchase contract already depend on.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

from .core import LedgerError


class ErrorCode(IntEnum):
    NOT_AUTHORIZED = 100
    INVALID_LISTING_ID = 101
    INVALID_AMOUNT = 102
    PURCHASE_NOT_FOUND = 104
    INVALID_STATUS = 105
    ESCROW_NOT_RELEASABLE = 107
    LISTING_NOT_FOUND = 109
    BUYER_MISMATCH = 110
    SELLER_MISMATCH = 111
    INVALID_ESCROW_DURATION = 113
    ESCROW_EXPIRED = 114
    INVALID_CURRENCY = 115
    MAX_PURCHASES_EXCEEDED = 116
    INVALID_DELIVERY_DEADLINE = 117
    INVALID_QUANTITY = 119
    INVALID_DISCOUNT = 120
    INVALID_TAX_RATE = 121
    INVALID_SHIPPING_FEE = 122
    INVALID_INSURANCE_FEE = 123
    INVALID_REFUND_PERCENT = 124
    ALREADY_SET = 125
    INVALID_ARGUMENT = 126
    TRANSFER_FAILED = 127


class EscrowError(LedgerError):
    """Raised by Result.unwrap() when the result is a failure."""

    def __init__(self, code: ErrorCode):
        super().__init__(f"{code.name} ({int(code)})")
        self.code = code


@dataclass(frozen=True, slots=True)
class Result:
    """
    Outcome of an escrow operation.

    Attributes:
        ok: True on success
        value: Success payload (purchase id, True, ...), None on failure
        error: ErrorCode on failure, None on success
    """
    ok: bool
    value: Any = None
    error: Optional[ErrorCode] = None

    def __post_init__(self):
        if self.ok and self.error is not None:
            raise ValueError("successful Result cannot carry an error")
        if not self.ok and self.error is None:
            raise ValueError("failed Result must carry an error")

    @classmethod
    def success(cls, value: Any = True) -> 'Result':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorCode) -> 'Result':
        return cls(ok=False, error=error)

    def unwrap(self) -> Any:
        """Return the success value, or raise EscrowError for a failure."""
        if not self.ok:
            raise EscrowError(self.error)
        return self.value

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return f"Ok({self.value!r})"
        return f"Err({self.error.name})"
