"""
conftest.py - Shared pytest fixtures for escrow tests

Provides:
- Funded transfer ledgers (real and fault-injecting)
- A listing directory with one listing
- Escrow engines with and without an authority
- Purchases already in the pending and delivered states
"""

import pytest

from escrow import (
    PurchaseLedger, EscrowConfig, EventLog,
    InMemoryListingDirectory,
)

from tests.fake_ledger import (
    FailingLedger,
    AUTHORITY, SELLER, LISTING_ID,
    build_ledger, make_canonical_purchase,
)


@pytest.fixture
def ledger():
    return build_ledger()


@pytest.fixture
def failing_ledger():
    """Same as ledger, but transfers can be made to fail on demand."""
    return build_ledger(FailingLedger)


@pytest.fixture
def listings():
    return InMemoryListingDirectory({LISTING_ID: SELLER})


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def bare_escrow(ledger, listings, events):
    """Escrow engine without an authority account."""
    return PurchaseLedger(ledger, listings, EscrowConfig(), events)


@pytest.fixture
def escrow(bare_escrow):
    """Escrow engine with AUTHORITY set."""
    bare_escrow.set_authority_contract(AUTHORITY).unwrap()
    return bare_escrow


@pytest.fixture
def failing_escrow(failing_ledger, listings, events):
    engine = PurchaseLedger(failing_ledger, listings, EscrowConfig(), events)
    engine.set_authority_contract(AUTHORITY).unwrap()
    return engine


@pytest.fixture
def pending_purchase(escrow):
    """Id of a freshly created pending purchase."""
    return make_canonical_purchase(escrow).unwrap()


@pytest.fixture
def delivered_purchase(escrow, pending_purchase):
    """Id of a purchase the seller has marked delivered."""
    escrow.update_purchase_status(SELLER, pending_purchase, "delivered").unwrap()
    return pending_purchase
