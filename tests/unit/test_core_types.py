"""
test_core_types.py - Unit tests for core data structures

Tests:
- Move validation
- PendingTransaction intent_id determinism
- Transaction net changes
- Result values and ErrorCode numbering
"""

import pytest

from escrow import (
    Move, PendingTransaction, Transaction, TransactionOrigin, OriginType,
    Result, ErrorCode, EscrowError, LedgerError,
    CUSTODY_WALLET,
)


def _origin(purchase_id=None):
    return TransactionOrigin(OriginType.PURCHASE, "buyer", purchase_id, "CREATE")


class TestMove:
    """Tests for Move construction."""

    def test_valid_move(self):
        move = Move(100, "alice", "bob", "payment")
        assert move.quantity == 100
        assert move.currency == "STX"

    def test_move_is_frozen(self):
        move = Move(100, "alice", "bob", "payment")
        with pytest.raises(AttributeError):
            move.quantity = 5

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValueError, match="positive"):
            Move(quantity, "alice", "bob", "payment")

    def test_float_quantity_rejected(self):
        with pytest.raises(ValueError, match="must be int"):
            Move(1.5, "alice", "bob", "payment")

    def test_bool_quantity_rejected(self):
        with pytest.raises(ValueError, match="must be int"):
            Move(True, "alice", "bob", "payment")

    def test_same_source_and_dest_rejected(self):
        with pytest.raises(ValueError, match="must be different"):
            Move(10, "alice", "alice", "payment")

    @pytest.mark.parametrize("source,dest,contract_id", [
        ("", "bob", "c"),
        ("alice", " ", "c"),
        ("alice", "bob", ""),
    ])
    def test_empty_identifiers_rejected(self, source, dest, contract_id):
        with pytest.raises(ValueError, match="cannot be empty"):
            Move(10, source, dest, contract_id)

    def test_repr_shows_direction(self):
        assert "alice→bob" in repr(Move(10, "alice", "bob", "c"))


class TestPendingTransaction:
    """Tests for PendingTransaction intent hashing."""

    def test_intent_id_is_deterministic(self):
        moves = (Move(10, "alice", CUSTODY_WALLET, "fund"),)
        a = PendingTransaction(moves, _origin(1), block_height=5)
        b = PendingTransaction(moves, _origin(1), block_height=5)
        assert a.intent_id == b.intent_id
        assert len(a.intent_id) == 16

    def test_intent_id_ignores_move_order(self):
        m1 = Move(10, "alice", CUSTODY_WALLET, "fund")
        m2 = Move(1, CUSTODY_WALLET, "auth", "fee")
        a = PendingTransaction((m1, m2), _origin(1), block_height=0)
        b = PendingTransaction((m2, m1), _origin(1), block_height=0)
        assert a.intent_id == b.intent_id

    def test_intent_id_depends_on_purchase_and_block(self):
        moves = (Move(10, "alice", CUSTODY_WALLET, "fund"),)
        base = PendingTransaction(moves, _origin(1), block_height=0)
        assert base.intent_id != PendingTransaction(moves, _origin(2), block_height=0).intent_id
        assert base.intent_id != PendingTransaction(moves, _origin(1), block_height=1).intent_id

    def test_empty_and_total(self):
        empty = PendingTransaction((), _origin(), block_height=0)
        assert empty.is_empty()
        tx = PendingTransaction(
            (Move(10, "a", "b", "x"), Move(3, "b", "c", "y")), _origin(), block_height=0
        )
        assert not tx.is_empty()
        assert tx.total_quantity() == 13


class TestTransaction:

    def test_requires_moves(self):
        with pytest.raises(ValueError, match="must have moves"):
            Transaction((), _origin(), 0, "id", "exec", "test", 0)

    def test_contract_ids_and_net_changes(self):
        moves = (
            Move(131, "buyer", CUSTODY_WALLET, "fund"),
            Move(1, CUSTODY_WALLET, "auth", "fee"),
        )
        tx = Transaction(moves, _origin(1), 0, "id", "exec", "test", 0)
        assert tx.contract_ids == frozenset({"fund", "fee"})
        assert tx.net_changes() == {"buyer": -131, CUSTODY_WALLET: 130, "auth": 1}


class TestResult:

    def test_success(self):
        result = Result.success(7)
        assert result.ok
        assert bool(result)
        assert result.unwrap() == 7
        assert result.error is None

    def test_failure(self):
        result = Result.failure(ErrorCode.PURCHASE_NOT_FOUND)
        assert not result.ok
        assert not result
        with pytest.raises(EscrowError) as exc_info:
            result.unwrap()
        assert exc_info.value.code == ErrorCode.PURCHASE_NOT_FOUND
        assert isinstance(exc_info.value, LedgerError)

    def test_inconsistent_results_rejected(self):
        with pytest.raises(ValueError):
            Result(ok=True, error=ErrorCode.INVALID_AMOUNT)
        with pytest.raises(ValueError):
            Result(ok=False)

    def test_repr(self):
        assert repr(Result.success(1)) == "Ok(1)"
        assert repr(Result.failure(ErrorCode.ESCROW_EXPIRED)) == "Err(ESCROW_EXPIRED)"

    def test_error_codes_match_contract_numbering(self):
        assert ErrorCode.NOT_AUTHORIZED == 100
        assert ErrorCode.PURCHASE_NOT_FOUND == 104
        assert ErrorCode.ESCROW_NOT_RELEASABLE == 107
        assert ErrorCode.ESCROW_EXPIRED == 114
        assert ErrorCode.MAX_PURCHASES_EXCEEDED == 116
        assert ErrorCode.INVALID_REFUND_PERCENT == 124
        assert len({int(c) for c in ErrorCode}) == len(ErrorCode)
