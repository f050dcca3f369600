"""
escrow - Purchase Escrow Ledger

Custodies a buyer's payment until delivery is confirmed, then releases it to
the seller, or refunds it if the purchase is cancelled while still pending.

Usage:
    from escrow import Ledger, PurchaseLedger, InMemoryListingDirectory

    ledger = Ledger("main", test_mode=True)
    ledger.register_wallet("buyer")
    ledger.register_wallet("seller")
    ledger.register_wallet("authority")
    ledger.set_balance("buyer", 1000)

    listings = InMemoryListingDirectory({1: "seller"})
    escrow = PurchaseLedger(ledger, listings)
    escrow.set_authority_contract("authority")

    purchase_id = escrow.make_purchase(
        "buyer", 1, 100, 1440, ledger.current_block + 100, "STX", 1,
    ).unwrap()
    escrow.update_purchase_status("seller", purchase_id, "delivered")
    escrow.release_escrow("buyer", purchase_id)
"""

# Core types
from .core import (
    LedgerView,
    TransferLedger,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    ExecuteResult,
    build_transaction,
    LedgerError,
    WalletNotRegistered,
    CUSTODY_WALLET,
    SUPPORTED_CURRENCIES,
    NATIVE_UNIT,
)

# Transfer ledger
from .ledger import Ledger

# Errors and results
from .errors import ErrorCode, EscrowError, Result

# Configuration
from .config import (
    EscrowConfig,
    DEFAULT_MAX_PURCHASES,
    DEFAULT_ESCROW_FEE_RATE,
    MAX_ESCROW_FEE_RATE,
    MAX_ESCROW_DURATION,
    MAX_TAX_RATE,
    MAX_PERCENT,
)

# Purchases
from .purchase import (
    Purchase,
    PurchaseStatus,
    PurchaseTerms,
    PurchaseUpdate,
    ALLOWED_TRANSITIONS,
    is_allowed_transition,
    validate_terms,
    compute_escrow_fee,
)

# Collaborators and events
from .listings import Listing, ListingDirectory, InMemoryListingDirectory
from .events import EventKind, EventLog, PurchaseEvent

# Engine
from .engine import PurchaseLedger

__all__ = [
    # Core
    'LedgerView', 'TransferLedger', 'Move', 'Transaction', 'PendingTransaction',
    'TransactionOrigin', 'OriginType', 'ExecuteResult', 'build_transaction',
    'LedgerError', 'WalletNotRegistered',
    'CUSTODY_WALLET', 'SUPPORTED_CURRENCIES', 'NATIVE_UNIT',
    # Ledger
    'Ledger',
    # Errors
    'ErrorCode', 'EscrowError', 'Result',
    # Config
    'EscrowConfig', 'DEFAULT_MAX_PURCHASES', 'DEFAULT_ESCROW_FEE_RATE',
    'MAX_ESCROW_FEE_RATE', 'MAX_ESCROW_DURATION', 'MAX_TAX_RATE', 'MAX_PERCENT',
    # Purchases
    'Purchase', 'PurchaseStatus', 'PurchaseTerms', 'PurchaseUpdate',
    'ALLOWED_TRANSITIONS', 'is_allowed_transition', 'validate_terms',
    'compute_escrow_fee',
    # Collaborators and events
    'Listing', 'ListingDirectory', 'InMemoryListingDirectory',
    'EventKind', 'EventLog', 'PurchaseEvent',
    # Engine
    'PurchaseLedger',
]

__version__ = '1.0.0'
