"""
purchase.py - Purchase records and creation-time field validation.

This module provides:
1. PurchaseStatus - the four lifecycle states
2. Purchase / PurchaseUpdate - immutable records stored by the engine
3. PurchaseTerms - the caller-supplied creation fields
4. validate_terms() - pure field validation in fixed priority order
5. compute_escrow_fee() - the creation-time fee arithmetic

Lifecycle:
    pending ──deliver──> delivered ──release──> completed
       │
       └──cancel──> cancelled

The engine only enforces this graph for release and cancel. Seller status
updates may move freely between states unless strict transitions are enabled.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .config import MAX_ESCROW_DURATION, MAX_PERCENT, MAX_TAX_RATE
from .core import SUPPORTED_CURRENCIES
from .errors import ErrorCode


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Any) -> Optional['PurchaseStatus']:
        """Return the matching status, or None for anything unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# Lifecycle graph, enforced on seller status updates only in strict mode.
ALLOWED_TRANSITIONS: Dict[PurchaseStatus, FrozenSet[PurchaseStatus]] = {
    PurchaseStatus.PENDING: frozenset({PurchaseStatus.DELIVERED, PurchaseStatus.CANCELLED}),
    PurchaseStatus.DELIVERED: frozenset({PurchaseStatus.COMPLETED}),
    PurchaseStatus.COMPLETED: frozenset(),
    PurchaseStatus.CANCELLED: frozenset(),
}

# Statuses whose escrowed principal still sits in the custody wallet.
FUNDS_IN_CUSTODY = frozenset({PurchaseStatus.PENDING, PurchaseStatus.DELIVERED})


def is_allowed_transition(old: PurchaseStatus, new: PurchaseStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[old]


@dataclass(frozen=True, slots=True)
class PurchaseTerms:
    """
    Caller-supplied fields of a purchase request.

    discount, tax_rate, refund_percent and replacement_policy are stored on
    the purchase but do not change the escrowed amount.
    """
    listing_id: int
    amount: int
    escrow_duration: int
    delivery_deadline: int
    currency: str
    quantity: int
    discount: int = 0
    tax_rate: int = 0
    shipping_fee: int = 0
    insurance_fee: int = 0
    refund_percent: int = 0
    replacement_policy: bool = False

    @property
    def net_amount(self) -> int:
        return self.amount + self.shipping_fee + self.insurance_fee


@dataclass(frozen=True, slots=True)
class Purchase:
    """
    One escrowed purchase.

    Every field except status is fixed at creation. seller is copied from the
    listing directory and never re-resolved.
    """
    id: int
    buyer: str
    seller: str
    listing_id: int
    amount: int
    status: PurchaseStatus
    timestamp: int
    escrow_duration: int
    delivery_deadline: int
    currency: str
    quantity: int
    discount: int
    tax_rate: int
    shipping_fee: int
    insurance_fee: int
    refund_percent: int
    replacement_policy: bool

    @property
    def net_amount(self) -> int:
        """Principal held in custody: amount plus shipping and insurance."""
        return self.amount + self.shipping_fee + self.insurance_fee

    @property
    def funds_in_custody(self) -> bool:
        return self.status in FUNDS_IN_CUSTODY

    def with_status(self, status: PurchaseStatus) -> 'Purchase':
        return replace(self, status=status)

    def terms(self) -> PurchaseTerms:
        return PurchaseTerms(
            listing_id=self.listing_id,
            amount=self.amount,
            escrow_duration=self.escrow_duration,
            delivery_deadline=self.delivery_deadline,
            currency=self.currency,
            quantity=self.quantity,
            discount=self.discount,
            tax_rate=self.tax_rate,
            shipping_fee=self.shipping_fee,
            insurance_fee=self.insurance_fee,
            refund_percent=self.refund_percent,
            replacement_policy=self.replacement_policy,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['status'] = self.status.value
        return d


@dataclass(frozen=True, slots=True)
class PurchaseUpdate:
    """Most recent transition of a purchase. Overwritten on every transition."""
    status: PurchaseStatus
    block_height: int
    updater: str


def validate_terms(terms: PurchaseTerms, current_block: int) -> Optional[ErrorCode]:
    """
    Validate purchase fields in priority order.

    Returns the error for the first violated check, or None if all pass.
    The purchase cap, authority and listing checks live in the engine, since
    they need configuration and the listing directory.
    """
    if terms.listing_id <= 0:
        return ErrorCode.INVALID_LISTING_ID
    if terms.amount <= 0:
        return ErrorCode.INVALID_AMOUNT
    if not 0 < terms.escrow_duration <= MAX_ESCROW_DURATION:
        return ErrorCode.INVALID_ESCROW_DURATION
    if terms.delivery_deadline <= current_block:
        return ErrorCode.INVALID_DELIVERY_DEADLINE
    if terms.currency not in SUPPORTED_CURRENCIES:
        return ErrorCode.INVALID_CURRENCY
    if terms.quantity <= 0:
        return ErrorCode.INVALID_QUANTITY
    if not 0 <= terms.discount <= MAX_PERCENT:
        return ErrorCode.INVALID_DISCOUNT
    if not 0 <= terms.tax_rate <= MAX_TAX_RATE:
        return ErrorCode.INVALID_TAX_RATE
    if terms.shipping_fee < 0:
        return ErrorCode.INVALID_SHIPPING_FEE
    if terms.insurance_fee < 0:
        return ErrorCode.INVALID_INSURANCE_FEE
    if not 0 <= terms.refund_percent <= MAX_PERCENT:
        return ErrorCode.INVALID_REFUND_PERCENT
    return None


def compute_escrow_fee(net_amount: int, rate: int) -> int:
    """
    Escrow fee as a floored percentage of the net amount.

    Example:
        compute_escrow_fee(130, 1)  # 1
        compute_escrow_fee(99, 1)   # 0
    """
    return (net_amount * rate) // 100
