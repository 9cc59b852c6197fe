"""
Blockbook History Test Suite

Tests for the undo/redo log: transitions between its modes, compaction of
old entries, and the persisted form.

Test Files:
1. test_history_transitions.py - commit, open, move, close, restore
2. test_history_compaction.py - Spacing, bounds, idempotence
3. test_history_json.py - Round trip with lazily loaded past entries
"""
