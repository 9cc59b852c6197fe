"""
Blockbook Blocks Test Suite

Tests for each block kind through the five block capabilities (init,
recompute, get_result, to_json, from_json) and its own edit operations.

Test Files:
1. test_command_block.py - Expressions and their results
2. test_sheet_block.py - Line edits, visibility, sheet JSON
3. test_selector_block.py - Choosing blocks, pending loads, registry
4. test_document_block.py - Page tree edits, template, document JSON
5. test_history_block.py - Undo/redo around another block
6. test_block_validation.py - Locations reported for malformed JSON
"""
