"""
listings.py - Listing Directory collaborator.

The escrow engine only needs one thing from listings: who sells a given
listing id. Any object with resolve_listing() can be plugged in.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class Listing:
    listing_id: int
    seller: str


@runtime_checkable
class ListingDirectory(Protocol):
    """Read-only lookup from listing id to listing. None means not found."""

    def resolve_listing(self, listing_id: int) -> Optional[Listing]:
        ...


class InMemoryListingDirectory:
    """Dict-backed ListingDirectory for tests and single-process deployments."""

    def __init__(self, listings: Optional[Dict[int, str]] = None):
        self._listings: Dict[int, Listing] = {}
        for listing_id, seller in (listings or {}).items():
            self.add_listing(listing_id, seller)

    def add_listing(self, listing_id: int, seller: str) -> Listing:
        """
        Register (or replace) a listing.

        Raises:
            ValueError: If listing_id is not positive or seller is empty
        """
        if listing_id <= 0:
            raise ValueError(f"listing_id must be positive, got {listing_id}")
        if not seller or not seller.strip():
            raise ValueError("seller cannot be empty")
        listing = Listing(listing_id=listing_id, seller=seller)
        self._listings[listing_id] = listing
        return listing

    def resolve_listing(self, listing_id: int) -> Optional[Listing]:
        return self._listings.get(listing_id)

    def __len__(self) -> int:
        return len(self._listings)
