"""
engine.py - Purchase Ledger

The PurchaseLedger owns the purchase and update stores and implements the
escrow lifecycle over an injected transfer ledger and listing directory.

Execution order of every state-changing operation:
1. Validate inputs and authorization (first violated check wins)
2. Build one PendingTransaction for the required transfers
3. Execute it atomically on the transfer ledger
4. Commit the new purchase state and its update record
5. Emit a PurchaseEvent

If step 3 is rejected nothing is committed and TRANSFER_FAILED is returned.
Operations are assumed to be serialized by the host; there is no locking.
"""

from __future__ import annotations
from typing import Dict, List, Optional
import logging

from .config import EscrowConfig, MAX_ESCROW_FEE_RATE
from .core import (
    Move, PendingTransaction, TransactionOrigin, OriginType,
    ExecuteResult, TransferLedger,
    CUSTODY_WALLET,
    build_transaction,
)
from .errors import ErrorCode, Result
from .events import EventKind, EventLog, PurchaseEvent
from .listings import ListingDirectory
from .purchase import (
    Purchase, PurchaseStatus, PurchaseTerms, PurchaseUpdate,
    compute_escrow_fee, is_allowed_transition, validate_terms,
)

logger = logging.getLogger(__name__)


class PurchaseLedger:
    """
    Escrow engine for buyer/seller purchases.

    Every operation takes the calling identity explicitly. The logical clock
    is read from the transfer ledger's current_block.

    Example:
        ledger = Ledger("main", test_mode=True)
        listings = InMemoryListingDirectory({1: "seller"})
        escrow = PurchaseLedger(ledger, listings)
        escrow.set_authority_contract("authority")

        result = escrow.make_purchase(
            "buyer", 1, 100, 1440, ledger.current_block + 100, "STX", 2,
        )
        purchase_id = result.unwrap()
    """

    def __init__(
        self,
        ledger: TransferLedger,
        listings: ListingDirectory,
        config: Optional[EscrowConfig] = None,
        events: Optional[EventLog] = None,
        custody_wallet: str = CUSTODY_WALLET,
        verbose: bool = False,
    ):
        self.ledger = ledger
        self.listings = listings
        self.config = config if config is not None else EscrowConfig()
        self.events = events if events is not None else EventLog()
        self.custody_wallet = custody_wallet
        self.verbose = verbose
        self._purchases: Dict[int, Purchase] = {}
        self._updates: Dict[int, PurchaseUpdate] = {}
        # principal each purchase currently has in custody
        self._held: Dict[int, int] = {}

    @property
    def current_block(self) -> int:
        return self.ledger.current_block

    # ========================================================================
    # CONFIGURATION & AUTHORITY GATING
    # ========================================================================

    def set_authority_contract(self, identity: str) -> Result:
        """Set the authority account. Only the first call succeeds."""
        if not isinstance(identity, str) or not identity.strip():
            return self._reject("set_authority_contract", ErrorCode.INVALID_ARGUMENT)
        result = self.config.set_authority(identity)
        if not result.ok:
            return self._reject("set_authority_contract", result.error)
        logger.info("authority set to %s", identity)
        return result

    def set_max_purchases(self, new_max: int, caller: Optional[str] = None) -> Result:
        if new_max <= 0:
            return self._reject("set_max_purchases", ErrorCode.INVALID_ARGUMENT)
        if not self._may_configure(caller):
            return self._reject("set_max_purchases", ErrorCode.NOT_AUTHORIZED)
        self.config.max_purchases = new_max
        logger.info("max_purchases set to %d", new_max)
        return Result.success(True)

    def set_escrow_fee_rate(self, new_rate: int, caller: Optional[str] = None) -> Result:
        if not 0 <= new_rate <= MAX_ESCROW_FEE_RATE:
            return self._reject("set_escrow_fee_rate", ErrorCode.INVALID_ARGUMENT)
        if not self._may_configure(caller):
            return self._reject("set_escrow_fee_rate", ErrorCode.NOT_AUTHORIZED)
        self.config.escrow_fee_rate = new_rate
        logger.info("escrow_fee_rate set to %d%%", new_rate)
        return Result.success(True)

    def _may_configure(self, caller: Optional[str]) -> bool:
        if not self.config.has_authority:
            return False
        if self.config.restrict_setters_to_authority:
            return caller == self.config.authority
        return True

    # ========================================================================
    # PURCHASE CREATION
    # ========================================================================

    def make_purchase(
        self,
        caller: str,
        listing_id: int,
        amount: int,
        escrow_duration: int,
        delivery_deadline: int,
        currency: str,
        quantity: int,
        discount: int = 0,
        tax_rate: int = 0,
        shipping_fee: int = 0,
        insurance_fee: int = 0,
        refund_percent: int = 0,
        replacement_policy: bool = False,
    ) -> Result:
        """
        Escrow a buyer's payment for a listing.

        Transfers amount + shipping + insurance plus the escrow fee from the
        buyer into custody, and pays the fee on to the authority, in one
        atomic transaction.
        When the fee rounds down to 0 only the funding transfer is made.

        Returns:
            Result with the new purchase id on success.
        """
        terms = PurchaseTerms(
            listing_id=listing_id,
            amount=amount,
            escrow_duration=escrow_duration,
            delivery_deadline=delivery_deadline,
            currency=currency,
            quantity=quantity,
            discount=discount,
            tax_rate=tax_rate,
            shipping_fee=shipping_fee,
            insurance_fee=insurance_fee,
            refund_percent=refund_percent,
            replacement_policy=replacement_policy,
        )
        return self.make_purchase_from_terms(caller, terms)

    def make_purchase_from_terms(self, caller: str, terms: PurchaseTerms) -> Result:
        config = self.config
        block = self.current_block

        if config.next_purchase_id >= config.max_purchases:
            return self._reject("make_purchase", ErrorCode.MAX_PURCHASES_EXCEEDED)
        error = validate_terms(terms, block)
        if error is not None:
            return self._reject("make_purchase", error)
        if not config.has_authority:
            return self._reject("make_purchase", ErrorCode.NOT_AUTHORIZED)
        listing = self.listings.resolve_listing(terms.listing_id)
        if listing is None:
            return self._reject("make_purchase", ErrorCode.LISTING_NOT_FOUND)

        purchase_id = config.next_purchase_id
        net_amount = terms.net_amount
        fee = compute_escrow_fee(net_amount, config.escrow_fee_rate)
        total_transfer = net_amount + fee

        moves = [(total_transfer, caller, self.custody_wallet, f"purchase_{purchase_id}_fund")]
        if fee > 0:
            moves.append((fee, self.custody_wallet, config.authority, f"purchase_{purchase_id}_fee"))
        origin = TransactionOrigin(OriginType.PURCHASE, caller, purchase_id, "CREATE")
        if not self._settle(moves, origin, terms.currency):
            return self._reject("make_purchase", ErrorCode.TRANSFER_FAILED)

        purchase = Purchase(
            id=purchase_id,
            buyer=caller,
            seller=listing.seller,
            listing_id=terms.listing_id,
            amount=terms.amount,
            status=PurchaseStatus.PENDING,
            timestamp=block,
            escrow_duration=terms.escrow_duration,
            delivery_deadline=terms.delivery_deadline,
            currency=terms.currency,
            quantity=terms.quantity,
            discount=terms.discount,
            tax_rate=terms.tax_rate,
            shipping_fee=terms.shipping_fee,
            insurance_fee=terms.insurance_fee,
            refund_percent=terms.refund_percent,
            replacement_policy=terms.replacement_policy,
        )
        self._purchases[purchase_id] = purchase
        self._held[purchase_id] = net_amount
        config.next_purchase_id += 1

        self._emit(EventKind.PURCHASE_CREATED, purchase_id, caller, (
            ('buyer', caller),
            ('seller', listing.seller),
            ('listing_id', terms.listing_id),
            ('net_amount', net_amount),
            ('fee', fee),
        ))
        logger.info(
            "purchase %d created: buyer=%s seller=%s escrowed=%d fee=%d",
            purchase_id, caller, listing.seller, net_amount, fee,
        )
        return Result.success(purchase_id)

    # ========================================================================
    # LIFECYCLE TRANSITIONS
    # ========================================================================

    def release_escrow(self, caller: str, purchase_id: int) -> Result:
        """
        Pay the escrowed principal to the seller of a delivered purchase.

        Allowed for the buyer or the seller, up to and including the
        delivery deadline block.
        """
        purchase = self._purchases.get(purchase_id)
        if purchase is None:
            return self._reject("release_escrow", ErrorCode.PURCHASE_NOT_FOUND)
        if purchase.status != PurchaseStatus.DELIVERED:
            return self._reject("release_escrow", ErrorCode.ESCROW_NOT_RELEASABLE)
        if self.current_block > purchase.delivery_deadline:
            return self._reject("release_escrow", ErrorCode.ESCROW_EXPIRED)
        if caller not in (purchase.buyer, purchase.seller):
            return self._reject("release_escrow", ErrorCode.NOT_AUTHORIZED)

        moves = [(purchase.net_amount, self.custody_wallet, purchase.seller, f"purchase_{purchase_id}_release")]
        origin = TransactionOrigin(OriginType.RELEASE, caller, purchase_id, "RELEASE")
        if not self._settle(moves, origin, purchase.currency):
            return self._reject("release_escrow", ErrorCode.TRANSFER_FAILED)

        self._held[purchase_id] -= purchase.net_amount
        self._commit(purchase, PurchaseStatus.COMPLETED, caller)
        self._emit(EventKind.ESCROW_RELEASED, purchase_id, caller, (
            ('seller', purchase.seller),
            ('amount', purchase.net_amount),
        ))
        return Result.success(True)

    def cancel_purchase(self, caller: str, purchase_id: int) -> Result:
        """
        Refund a pending purchase to its buyer.

        The escrow fee collected at creation is not refunded.
        """
        purchase = self._purchases.get(purchase_id)
        if purchase is None:
            return self._reject("cancel_purchase", ErrorCode.PURCHASE_NOT_FOUND)
        if purchase.status != PurchaseStatus.PENDING:
            return self._reject("cancel_purchase", ErrorCode.INVALID_STATUS)
        if caller != purchase.buyer:
            return self._reject("cancel_purchase", ErrorCode.BUYER_MISMATCH)

        moves = [(purchase.net_amount, self.custody_wallet, purchase.buyer, f"purchase_{purchase_id}_refund")]
        origin = TransactionOrigin(OriginType.REFUND, caller, purchase_id, "CANCEL")
        if not self._settle(moves, origin, purchase.currency):
            return self._reject("cancel_purchase", ErrorCode.TRANSFER_FAILED)

        self._held[purchase_id] -= purchase.net_amount
        self._commit(purchase, PurchaseStatus.CANCELLED, caller)
        self._emit(EventKind.PURCHASE_CANCELLED, purchase_id, caller, (
            ('buyer', purchase.buyer),
            ('refund', purchase.net_amount),
        ))
        return Result.success(True)

    def update_purchase_status(self, caller: str, purchase_id: int, new_status) -> Result:
        """
        Seller-driven status change (e.g. marking a purchase delivered).

        Without strict_transitions this overwrites the status unconditionally,
        including backward moves such as completed -> pending. No funds move.
        """
        purchase = self._purchases.get(purchase_id)
        if purchase is None:
            return self._reject("update_purchase_status", ErrorCode.PURCHASE_NOT_FOUND)
        if caller != purchase.seller:
            return self._reject("update_purchase_status", ErrorCode.SELLER_MISMATCH)
        status = PurchaseStatus.parse(new_status)
        if status is None:
            return self._reject("update_purchase_status", ErrorCode.INVALID_STATUS)
        if self.config.strict_transitions and not is_allowed_transition(purchase.status, status):
            return self._reject("update_purchase_status", ErrorCode.INVALID_STATUS)

        previous = purchase.status
        self._commit(purchase, status, caller)
        self._emit(EventKind.STATUS_UPDATED, purchase_id, caller, (
            ('old_status', previous.value),
            ('new_status', status.value),
        ))
        return Result.success(True)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_purchase(self, purchase_id: int) -> Optional[Purchase]:
        return self._purchases.get(purchase_id)

    def get_purchase_updates(self, purchase_id: int) -> Optional[PurchaseUpdate]:
        return self._updates.get(purchase_id)

    def get_purchase_count(self) -> int:
        """
        Return next_purchase_id.

        This is one more than the number of purchases created; external
        callers rely on that convention.
        """
        return self.config.next_purchase_id

    def list_purchases(
        self,
        buyer: Optional[str] = None,
        seller: Optional[str] = None,
        status: Optional[PurchaseStatus] = None,
    ) -> List[Purchase]:
        """Purchases in id order, optionally filtered."""
        results = [self._purchases[i] for i in sorted(self._purchases)]
        if buyer is not None:
            results = [p for p in results if p.buyer == buyer]
        if seller is not None:
            results = [p for p in results if p.seller == seller]
        if status is not None:
            results = [p for p in results if p.status == status]
        return results

    def escrowed_balance(self) -> int:
        """
        Principal the custody wallet should hold for this engine's purchases.

        Tracked from the transfers actually settled (funding minus release and
        refund payouts), not from status, so a permissive backward status
        update does not make it count funds that already left custody.
        """
        return sum(self._held.values())

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _settle(self, moves: list, origin: TransactionOrigin, currency: str) -> bool:
        """
        Execute (quantity, source, dest, contract_id) moves as one transaction.

        Returns False if the moves are malformed or the ledger rejects them.
        """
        try:
            built = [Move(qty, src, dst, cid, currency) for qty, src, dst, cid in moves]
        except ValueError as e:
            logger.debug("malformed transfer for %r: %s", origin, e)
            return False
        pending: PendingTransaction = build_transaction(self.ledger, built, origin)
        return self.ledger.execute(pending) == ExecuteResult.APPLIED

    def _commit(self, purchase: Purchase, status: PurchaseStatus, caller: str) -> None:
        block = self.current_block
        self._purchases[purchase.id] = purchase.with_status(status)
        self._updates[purchase.id] = PurchaseUpdate(status=status, block_height=block, updater=caller)
        logger.info(
            "purchase %d: %s -> %s by %s at block %d",
            purchase.id, purchase.status.value, status.value, caller, block,
        )
        if self.verbose:
            print(f"✓ purchase {purchase.id}: {purchase.status.value} → {status.value} ({caller})")

    def _emit(self, kind: EventKind, purchase_id: int, actor: str, params: tuple) -> None:
        self.events.emit(PurchaseEvent(
            kind=kind,
            purchase_id=purchase_id,
            block_height=self.current_block,
            actor=actor,
            params=params,
        ))

    def _reject(self, operation: str, error: ErrorCode) -> Result:
        logger.debug("%s rejected: %s", operation, error.name)
        if self.verbose:
            print(f"✗ {operation}: {error.name}")
        return Result.failure(error)
