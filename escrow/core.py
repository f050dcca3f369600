"""
Core types and pure functions for the escrow ledger.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only access, TransferLedger for the transfer primitive
2. Immutable data structures: Move, PendingTransaction, Transaction
3. Exceptions: LedgerError and ledger-level error types
4. Constants: custody wallet id, supported currency tags

All functions in this module are pure. Nothing here mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import hashlib
from typing import Dict, Optional, Protocol, Set, Tuple, FrozenSet, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet that holds escrowed funds between creation and
# release/cancellation. Only the purchase lifecycle moves value out of it.
CUSTODY_WALLET = "escrow"

# Currency tags accepted on a purchase. The tag is informational and does not
# select which ledger the transfer primitive uses.
SUPPORTED_CURRENCIES = ("STX", "BTC", "USD")

# Native unit the transfer ledger settles in.
NATIVE_UNIT = "STX"


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Functions accepting a LedgerView declare their read-only intent. The Ledger
    class implements this protocol but also provides mutation methods.
    """

    @property
    def current_block(self) -> int:
        """Return the logical clock (block height) of the ledger."""
        ...

    def get_balance(self, wallet_id: str) -> int:
        """Return the balance of a wallet."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def is_registered(self, wallet_id: str) -> bool:
        """Return True if the wallet is known to the ledger."""
        ...


@runtime_checkable
class TransferLedger(LedgerView, Protocol):
    """
    The atomic value-transfer capability the escrow engine depends on.

    execute() applies every move of a PendingTransaction or none of them and
    reports the outcome as an ExecuteResult value.
    """

    def execute(self, pending: 'PendingTransaction') -> 'ExecuteResult':
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    REJECTED: Transaction failed validation (insufficient balance, unknown wallet).
    """
    APPLIED = "applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated, for audit trails."""
    PURCHASE = "purchase"       # Buyer funding escrow at creation
    RELEASE = "release"         # Escrow paid out to the seller
    REFUND = "refund"           # Escrow returned to the buyer
    SYSTEM = "system"           # Funding, setup, direct transfers


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when operating on a wallet that has not been registered with the ledger."""
    pass


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identity that caused the transaction (caller, engine name)
        purchase_id: Purchase the transaction belongs to (if any)
        event_type: Specific event within the source (e.g. "CREATE", "RELEASE")
    """
    origin_type: OriginType
    source_id: str
    purchase_id: Optional[int] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.purchase_id is not None:
            parts.append(f"purchase={self.purchase_id}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer in the native unit (positive integer).
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the operation generating this move.
        currency: Informational currency tag carried for audit.
    """
    quantity: int
    source: str
    dest: str
    contract_id: str
    currency: str = NATIVE_UNIT

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.currency}: {self.source}→{self.dest})"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    origin: TransactionOrigin,
    block_height: int,
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    Same moves, origin and block height always produce the same intent_id,
    regardless of the order the moves were listed in.
    """
    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.purchase_id is not None:
        content_parts.append(f"purchase:{origin.purchase_id}")
    if origin.event_type:
        content_parts.append(f"event:{origin.event_type}")
    content_parts.append(f"block:{block_height}")

    for m in sorted(moves, key=lambda m: (m.quantity, m.source, m.dest, m.contract_id)):
        content_parts.append(f"move:{m.quantity}|{m.currency}|{m.source}|{m.dest}|{m.contract_id}")

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction specification before execution - represents INTENT.

    Built by the escrow engine and submitted to the transfer ledger.

    Attributes:
        moves: Tuple of value transfers between wallets
        origin: Who/what created this transaction and why
        block_height: Logical clock value when the intent was built
        intent_id: Content-addressable hash of the transaction intent (auto-computed)
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    block_height: int
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(self.moves, self.origin, self.block_height)
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves."""
        return not self.moves

    def total_quantity(self) -> int:
        return sum(m.quantity for m in self.moves)

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: list,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves, stamped with the view's block height.

    Args:
        view: Read-only ledger view (provides current_block)
        moves: Moves to include in the transaction
        origin: Transaction origin (defaults to a SYSTEM origin)

    Example:
        tx = build_transaction(ledger, [
            Move(100, "alice", CUSTODY_WALLET, "purchase_1_fund"),
        ])
        ledger.execute(tx)
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.SYSTEM,
            source_id="system",
        )
    return PendingTransaction(
        moves=tuple(moves),
        origin=origin,
        block_height=view.current_block,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger balance changes - represents FACT.

    Attributes:
        moves: Tuple of value transfers between wallets
        origin: Who/what created this transaction and why
        block_height: Block height the PendingTransaction was built at
        intent_id: Content hash from PendingTransaction
        exec_id: Unique execution identifier (ledger + sequence + block)
        ledger_name: Name of the ledger that executed this
        sequence_number: Monotonic sequence within the ledger (for ordering)
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    origin: TransactionOrigin
    block_height: int
    intent_id: str
    exec_id: str
    ledger_name: str
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves:
            raise ValueError("Transaction must have moves")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def net_changes(self) -> Dict[str, int]:
        """Net balance change per wallet caused by this transaction."""
        net: Dict[str, int] = {}
        for m in self.moves:
            net[m.source] = net.get(m.source, 0) - m.quantity
            net[m.dest] = net.get(m.dest, 0) + m.quantity
        return net

    def __repr__(self) -> str:
        lines = [
            f"Transaction {self.exec_id} [{self.origin}] intent={self.intent_id}",
        ]
        for i, move in enumerate(self.moves):
            lines.append(f"  [{i}] {move.quantity} {move.currency}: {move.source} → {move.dest}")
        return "\n".join(lines)
