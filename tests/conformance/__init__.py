"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the escrow engine.

The tests are organized by invariant:
1. test_conservation.py - Value is never created or destroyed by escrow operations
2. test_atomicity.py - A rejected transfer leaves no trace in purchase state
3. test_sequencing.py - Purchase ids, counts and check priority

These tests use hypothesis for property-based testing.
"""
