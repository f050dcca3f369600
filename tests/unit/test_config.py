"""
Tests for config.py - escrow configuration state

Tests:
- Defaults
- One-time authority guard
- from_mapping loading and validation
"""

import pytest

from escrow import (
    EscrowConfig, ErrorCode,
    DEFAULT_MAX_PURCHASES, DEFAULT_ESCROW_FEE_RATE,
)


class TestDefaults:

    def test_defaults(self):
        config = EscrowConfig()
        assert config.next_purchase_id == 1
        assert config.max_purchases == DEFAULT_MAX_PURCHASES == 10000
        assert config.escrow_fee_rate == DEFAULT_ESCROW_FEE_RATE == 1
        assert config.authority is None
        assert not config.has_authority
        assert config.strict_transitions is False
        assert config.restrict_setters_to_authority is False


class TestAuthority:

    def test_set_once(self):
        config = EscrowConfig()
        assert config.set_authority("auth").ok
        assert config.has_authority
        assert config.authority == "auth"

    def test_second_set_fails_and_keeps_first(self):
        config = EscrowConfig()
        config.set_authority("auth")
        result = config.set_authority("other")
        assert result.error == ErrorCode.ALREADY_SET
        assert config.authority == "auth"


class TestFromMapping:

    def test_load(self):
        config = EscrowConfig.from_mapping({
            'max_purchases': 50,
            'escrow_fee_rate': 3,
            'authority': "auth",
            'strict_transitions': True,
        })
        assert config.max_purchases == 50
        assert config.escrow_fee_rate == 3
        assert config.authority == "auth"
        assert config.strict_transitions
        assert config.next_purchase_id == 1

    def test_empty_mapping_gives_defaults(self):
        assert EscrowConfig.from_mapping({}) == EscrowConfig()

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown escrow config keys"):
            EscrowConfig.from_mapping({'fee': 1})

    @pytest.mark.parametrize("mapping", [
        {'max_purchases': 0},
        {'escrow_fee_rate': 11},
        {'escrow_fee_rate': -1},
        {'next_purchase_id': 0},
        {'authority': "  "},
    ])
    def test_out_of_range_rejected(self, mapping):
        with pytest.raises(ValueError):
            EscrowConfig.from_mapping(mapping)
