"""
Blockbook Kernel — Standard Library

The blocks a new document can pick from, and the top-level block a host
runs: a document of selector pages with an undo/redo log around it.
"""

from __future__ import annotations

from blockbook.kernel.block import Block, BlockRegistry
from blockbook.kernel.blocks import CommandBlock, DocumentBlock, HistoryBlock, SelectorBlock, SheetBlock
from blockbook.kernel.evaluator import Evaluator, evaluate


def default_library(evaluate: Evaluator = evaluate) -> BlockRegistry:
    command = CommandBlock(evaluate)
    return BlockRegistry(
        {
            "Command": command,
            "Sheet": SheetBlock(command),
        }
    )


def toplevel_block(library: BlockRegistry | None = None, evaluate: Evaluator = evaluate) -> Block:
    library = library or default_library(evaluate)
    return HistoryBlock(DocumentBlock(SelectorBlock(library, evaluate)))
