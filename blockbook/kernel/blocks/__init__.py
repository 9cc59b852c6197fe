"""
Block variants.

  command   one expression, its value is the result
  sheet     named lines, each line sees the lines above it
  selector  runs the block a user expression names
  document  a tree of named pages, one of them open
  history   any block plus an undo/redo log
"""

from blockbook.kernel.blocks.command import CommandBlock
from blockbook.kernel.blocks.document import DocumentBlock
from blockbook.kernel.blocks.history import HistoryBlock
from blockbook.kernel.blocks.selector import SelectorBlock
from blockbook.kernel.blocks.sheet import SheetBlock

__all__ = [
    "CommandBlock",
    "DocumentBlock",
    "HistoryBlock",
    "SelectorBlock",
    "SheetBlock",
]
