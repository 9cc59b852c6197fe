"""
Blockbook Assembly Test Suite

Tests for the host side of the kernel: storing and loading top-level
state, and sessions that apply updates.

Test Files:
1. test_assembly_round_trip.py - fresh → edit → save → load
2. test_assembly_storage.py - Memory and directory storage, corrupt data, locking
3. test_session.py - Update queue, error handling, loading JSON
"""
