"""
Atomicity Conformance Tests

INVARIANT: Escrow operations are all-or-nothing.

    ∀ operation O:
        the transfer for O is rejected ⟹ purchases, updates, counter,
                                         events and balances are unchanged

Failures are injected with FailingLedger.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from escrow import (
    PurchaseLedger, EscrowConfig, EventLog, InMemoryListingDirectory,
    ErrorCode,
)

from tests.fake_ledger import (
    FailingLedger, BUYER, SELLER, AUTHORITY, LISTING_ID,
    build_ledger, make_canonical_purchase,
)


def _snapshot(ledger, escrow):
    return (
        dict(ledger.balances),
        len(ledger.transaction_log),
        escrow.get_purchase_count(),
        tuple(p.to_dict()['status'] for p in escrow.list_purchases()),
        tuple(escrow.get_purchase_updates(p.id) for p in escrow.list_purchases()),
        len(escrow.events),
    )


def _engine():
    ledger = build_ledger(FailingLedger)
    escrow = PurchaseLedger(
        ledger, InMemoryListingDirectory({LISTING_ID: SELLER}),
        EscrowConfig(authority=AUTHORITY), EventLog(),
    )
    return ledger, escrow


class TestAtomicityProperties:

    @given(
        prior=st.integers(min_value=0, max_value=5),
        step=st.sampled_from(["create", "release", "cancel"]),
    )
    @settings(max_examples=60, deadline=None)
    def test_rejected_transfer_leaves_no_trace(self, prior, step):
        ledger, escrow = _engine()
        for _ in range(prior):
            make_canonical_purchase(escrow).unwrap()
        target = make_canonical_purchase(escrow).unwrap()
        if step == "release":
            escrow.update_purchase_status(SELLER, target, "delivered").unwrap()

        before = _snapshot(ledger, escrow)
        ledger.fail_next(1)
        if step == "create":
            result = make_canonical_purchase(escrow)
        elif step == "release":
            result = escrow.release_escrow(BUYER, target)
        else:
            result = escrow.cancel_purchase(BUYER, target)

        assert result.error == ErrorCode.TRANSFER_FAILED
        assert _snapshot(ledger, escrow) == before


class TestAtomicityExamples:

    def test_fee_leg_failure_rolls_back_funding_leg(self):
        """The two creation transfers are one transaction: a bad fee leg undoes both."""
        ledger = build_ledger()
        # Authority wallet unknown to the ledger makes the fee leg fail
        escrow = PurchaseLedger(
            ledger, InMemoryListingDirectory({LISTING_ID: SELLER}),
            EscrowConfig(authority="ST7UNREGISTERED"),
        )
        before = dict(ledger.balances)
        result = make_canonical_purchase(escrow)
        assert result.error == ErrorCode.TRANSFER_FAILED
        assert ledger.balances == before
        assert ledger.transaction_log == []
        assert escrow.get_purchase_count() == 1

    def test_retry_after_failure_succeeds(self):
        ledger, escrow = _engine()
        ledger.fail_next(2)
        assert make_canonical_purchase(escrow).error == ErrorCode.TRANSFER_FAILED
        assert make_canonical_purchase(escrow).error == ErrorCode.TRANSFER_FAILED
        assert make_canonical_purchase(escrow).value == 1
        assert len(ledger.rejected) == 2
