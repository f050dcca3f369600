"""
events.py - Observable purchase events.

Every state-changing escrow operation emits one PurchaseEvent. Events are
just data; delivery to external observers is left to subscribers.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    PURCHASE_CREATED = "purchase-created"
    ESCROW_RELEASED = "escrow-released"
    PURCHASE_CANCELLED = "purchase-cancelled"
    STATUS_UPDATED = "status-updated"


@dataclass(frozen=True, slots=True)
class PurchaseEvent:
    """
    Immutable record of one purchase transition.

    Attributes:
        kind: What happened
        purchase_id: Purchase the event refers to
        block_height: Logical clock value at emission
        actor: Identity that invoked the operation
        params: Event-specific fields as frozen tuple of (key, value) pairs
    """
    kind: EventKind
    purchase_id: int
    block_height: int
    actor: str
    params: tuple = ()

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'purchase_id': self.purchase_id,
            'block_height': self.block_height,
            'actor': self.actor,
            **self.params_dict,
        }


Subscriber = Callable[[PurchaseEvent], None]


class EventLog:
    """Append-only event log with optional subscribers."""

    def __init__(self, subscribers: Optional[List[Subscriber]] = None):
        self._events: List[PurchaseEvent] = []
        self._subscribers: List[Subscriber] = list(subscribers or [])

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, event: PurchaseEvent) -> None:
        """Record the event, then notify subscribers. Subscriber errors are logged, not raised."""
        self._events.append(event)
        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception("subscriber %r failed on %s for purchase %d",
                                 subscriber, event.kind.value, event.purchase_id)

    def for_purchase(self, purchase_id: int) -> List[PurchaseEvent]:
        return [e for e in self._events if e.purchase_id == purchase_id]

    def of_kind(self, kind: EventKind) -> List[PurchaseEvent]:
        return [e for e in self._events if e.kind == kind]

    def __iter__(self) -> Iterator[PurchaseEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
