"""
Blockbook Kernel — the pure engine.

Components:
  forest    — named entries in lists and trees, incremental recompute
  history   — undo/redo log with age-based compaction
  blocks    — command, sheet, selector, document, history
  session   — the host update sink
  assembly  — coordinates blocks + storage (the only IO)
"""

from blockbook.kernel.assembly import DocumentAssembly, MemoryStorage
from blockbook.kernel.block import Block, BlockRegistry, is_block
from blockbook.kernel.environment import Environment
from blockbook.kernel.evaluator import evaluate
from blockbook.kernel.forest import recompute_from
from blockbook.kernel.history import compact
from blockbook.kernel.library import default_library, toplevel_block
from blockbook.kernel.schemas import ValidationError
from blockbook.kernel.session import Session
from blockbook.kernel.types import EvaluationError

__all__ = [
    "Block",
    "BlockRegistry",
    "DocumentAssembly",
    "Environment",
    "EvaluationError",
    "MemoryStorage",
    "Session",
    "ValidationError",
    "compact",
    "default_library",
    "evaluate",
    "is_block",
    "recompute_from",
    "toplevel_block",
]
