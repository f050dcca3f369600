"""
config.py - Process-wide escrow configuration.

EscrowConfig is the single configuration object threaded into the escrow
engine. It replaces module-level mutable state: the purchase id counter,
the purchase cap, the escrow fee rate and the one-time authority account.
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from .errors import ErrorCode, Result


# ============================================================================
# DEFAULTS AND BOUNDS
# ============================================================================

DEFAULT_MAX_PURCHASES = 10000
DEFAULT_ESCROW_FEE_RATE = 1     # percent of the escrowed net amount

MAX_ESCROW_FEE_RATE = 10
MAX_ESCROW_DURATION = 10080     # blocks
MAX_TAX_RATE = 20
MAX_PERCENT = 100


@dataclass
class EscrowConfig:
    """
    Mutable singleton configuration for one escrow engine.

    Attributes:
        next_purchase_id: Id the next accepted purchase receives (starts at 1)
        max_purchases: Creation is rejected once next_purchase_id reaches this
        escrow_fee_rate: Percentage fee collected at creation, at most 10
        authority: Fee recipient; unset until set_authority() succeeds once
        strict_transitions: Enforce the lifecycle graph on status updates
        restrict_setters_to_authority: Require caller == authority on setters
    """
    next_purchase_id: int = 1
    max_purchases: int = DEFAULT_MAX_PURCHASES
    escrow_fee_rate: int = DEFAULT_ESCROW_FEE_RATE
    authority: Optional[str] = None
    strict_transitions: bool = False
    restrict_setters_to_authority: bool = False

    @property
    def has_authority(self) -> bool:
        return self.authority is not None

    def set_authority(self, identity: str) -> Result:
        """Populate the authority account. Succeeds exactly once."""
        if self.authority is not None:
            return Result.failure(ErrorCode.ALREADY_SET)
        self.authority = identity
        return Result.success(True)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'EscrowConfig':
        """
        Build a config from a plain mapping, e.g. parsed deployment settings.

        Raises:
            ValueError: On unknown keys or out-of-range values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(mapping) - known
        if unknown:
            raise ValueError(f"Unknown escrow config keys: {sorted(unknown)}")

        config = cls(**dict(mapping))
        if config.next_purchase_id < 1:
            raise ValueError(f"next_purchase_id must be >= 1, got {config.next_purchase_id}")
        if config.max_purchases <= 0:
            raise ValueError(f"max_purchases must be positive, got {config.max_purchases}")
        if not 0 <= config.escrow_fee_rate <= MAX_ESCROW_FEE_RATE:
            raise ValueError(
                f"escrow_fee_rate must be in [0, {MAX_ESCROW_FEE_RATE}], got {config.escrow_fee_rate}"
            )
        if config.authority is not None and not str(config.authority).strip():
            raise ValueError("authority cannot be empty")
        return config
