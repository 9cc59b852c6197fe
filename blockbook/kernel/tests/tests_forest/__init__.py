"""
Blockbook Forest Test Suite

Tests for ordered lists and trees of named entries and their incremental
recomputation.

Test Files:
1. test_forest_scenarios.py - Sheet-shaped walkthroughs (insert, delete, rename)
2. test_forest_anchors.py - Where recomputation resumes, and what is shared
3. test_forest_structure.py - Insert, delete, move, nest, unnest on trees
4. test_forest_paths.py - Lookup, environments and path-addressed updates
"""
