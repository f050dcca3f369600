"""
ledger.py - In-Memory Transfer Ledger

The Ledger class is the reference implementation of the atomic transfer
primitive the escrow engine consumes. It is the only module that mutates
wallet balances.

Key responsibilities:
    - Implements the TransferLedger protocol (read-only view + execute)
    - Executes transactions atomically (all moves succeed or all fail)
    - Maintains integer wallet balances of a single native unit
    - Tracks the logical clock (block height)
    - Always validates and always logs - no exceptions
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Set, Optional, Tuple, Any
import logging

from .core import (
    Move, Transaction, PendingTransaction,
    ExecuteResult, TransactionOrigin, OriginType,
    CUSTODY_WALLET,
    LedgerError, WalletNotRegistered,
    build_transaction,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Single-unit transfer ledger with full validation and a transfer journal.

    Implements the TransferLedger protocol, so it can be handed to the
    escrow engine directly.

    Design Principles:
        - Always validates: every move is checked against wallet registration
          and the no-overdraft rule, computed over the net of the whole batch.
        - Always logs: every applied transaction is appended to transaction_log.

    Thread Safety:
        Not thread-safe. Operations are expected to be serialized by the host.

    Example:
        ledger = Ledger("main", test_mode=True)
        ledger.register_wallet("alice")
        ledger.set_balance("alice", 1000)
        ledger.transfer(100, "alice", CUSTODY_WALLET)
    """

    def __init__(
        self,
        name: str,
        initial_block: int = 0,
        verbose: bool = False,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_block: Starting block height (default: 0)
            verbose: Print transaction summaries (default: False)
            test_mode: Allow set_balance() calls (default: False)
        """
        if initial_block < 0:
            raise ValueError(f"initial_block must be non-negative, got {initial_block}")
        self.name = name
        self.balances: Dict[str, int] = {}
        self.registered_wallets: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self._current_block: int = initial_block
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0

        # The custody wallet always exists
        self.register_wallet(CUSTODY_WALLET)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_block(self) -> int:
        """Current logical clock value of the ledger."""
        return self._current_block

    def get_balance(self, wallet_id: str) -> int:
        """
        Get the balance of a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return self.balances[wallet_id]

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    def total_supply(self) -> int:
        """
        Sum of all wallet balances.

        Transfers redistribute value, so this only changes through set_balance().
        """
        return sum(self.balances[w] for w in sorted(self.registered_wallets))

    def verify_conservation(self, expected_supply: int) -> Dict[str, Any]:
        """
        Verify that the total supply matches an expected value.

        Returns:
            Dict with keys 'valid', 'supply' and 'difference'.

        Example:
            result = ledger.verify_conservation(10_000)
            assert result['valid'], f"Conservation violated: {result}"
        """
        supply = self.total_supply()
        return {
            'valid': supply == expected_supply,
            'supply': supply,
            'difference': supply - expected_supply,
        }

    def transactions_for(self, purchase_id: int) -> List[Transaction]:
        """All applied transactions whose origin refers to purchase_id."""
        return [tx for tx in self.transaction_log if tx.origin.purchase_id == purchase_id]

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_block(self, blocks: int = 1) -> int:
        """
        Advance the logical clock by a number of blocks.

        Raises:
            ValueError: If blocks is negative
        """
        if blocks < 0:
            raise ValueError(f"Cannot move block height backwards by {blocks}")
        self._current_block += blocks
        return self._current_block

    def set_block(self, height: int) -> None:
        """
        Move the logical clock to an absolute height.

        Raises:
            ValueError: If height is below the current height
        """
        if height < self._current_block:
            raise ValueError(
                f"Cannot move block height backwards: {height} < {self._current_block}"
            )
        self._current_block = height

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet with a zero balance.

        Raises:
            ValueError: If wallet is empty or already registered
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("wallet_id cannot be empty")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = 0
        return wallet_id

    def set_balance(self, wallet_id: str, quantity: int) -> None:
        """
        Set a wallet's balance directly.

        WARNING: This bypasses double-entry accounting and is only available
        in test mode. For production use, fund wallets with execute().

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Use build_transaction() and execute() to modify balances. "
                "Set test_mode=True when creating Ledger for testing."
            )
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if quantity < 0:
            raise ValueError(f"Balance cannot be negative, got {quantity}")
        self.balances[wallet_id] = int(quantity)

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """Format: exec:{ledger_name}:{sequence:012d}:{block}"""
        return f"exec:{self.name}:{sequence:012d}:{self._current_block}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        All moves succeed together or all fail together. A transaction is
        rejected if any wallet is unknown, if it was built at a future block,
        or if any wallet would end below zero after the net of all moves.

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.REJECTED if validation failed
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            logger.info("REJECTED %s: %s", pending.intent_id, reason)
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1

        tx = Transaction(
            moves=pending.moves,
            origin=pending.origin,
            block_height=pending.block_height,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            sequence_number=sequence,
        )

        self._execute_moves(tx.moves)
        self.transaction_log.append(tx)

        logger.debug("APPLIED %s (%d moves, %r)", tx.exec_id, len(tx.moves), tx.origin)
        if self.verbose:
            print(repr(tx))
        return ExecuteResult.APPLIED

    def transfer(
        self,
        amount: int,
        source: str,
        dest: str,
        contract_id: str = "transfer",
        origin: Optional[TransactionOrigin] = None,
    ) -> ExecuteResult:
        """
        Move amount from source to dest as a single-move transaction.

        Invalid arguments (non-positive amount, source == dest) reject rather
        than raise, matching the success|failure contract of the primitive.
        """
        try:
            move = Move(amount, source, dest, contract_id)
        except ValueError as e:
            logger.info("REJECTED transfer %s -> %s: %s", source, dest, e)
            return ExecuteResult.REJECTED
        if origin is None:
            origin = TransactionOrigin(OriginType.SYSTEM, source)
        return self.execute(build_transaction(self, [move], origin))

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate pending transaction against all constraints.

        Checks performed:
        1. Block height (transaction must not be from the future)
        2. Wallet registration
        3. No-overdraft rule on the net balance change per wallet

        Returns:
            Tuple of (success: bool, reason: str)
        """
        if pending.block_height > self._current_block:
            return False, "future block height"

        for move in pending.moves:
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

        # Moves apply in order, so an intermediate hop (custody receiving then
        # paying out) must be covered at every step, not just on the net.
        running: Dict[str, int] = defaultdict(int)
        for move in pending.moves:
            running[move.source] -= move.quantity
            running[move.dest] += move.quantity
            proposed = self.balances[move.source] + running[move.source]
            if proposed < 0:
                return False, f"{move.source}: {proposed} < 0"

        return True, ""

    def _execute_moves(self, moves) -> None:
        for move in moves:
            self.balances[move.source] -= move.quantity
            self.balances[move.dest] += move.quantity

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create an independent copy of this ledger.

        Cloned state includes balances, wallets, the transaction log (shared
        immutable records), the block height and configuration.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned.balances = dict(self.balances)
        cloned.registered_wallets = set(self.registered_wallets)
        cloned.transaction_log = list(self.transaction_log)
        cloned._current_block = self._current_block
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned._next_sequence = self._next_sequence
        return cloned
