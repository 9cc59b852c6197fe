"""
Blockbook kernel test configuration.

Shared blocks for the kernel tests. Everything here is pure except the
storage fixtures, which use MemoryStorage or a pytest tmp_path.
"""

import pytest

from blockbook.kernel.block import BlockRegistry
from blockbook.kernel.blocks import CommandBlock, DocumentBlock, HistoryBlock, SelectorBlock, SheetBlock
from blockbook.kernel.environment import Environment


@pytest.fixture
def env():
    return Environment()


@pytest.fixture
def command():
    return CommandBlock()


@pytest.fixture
def sheet(command):
    return SheetBlock(command)


@pytest.fixture
def library(command, sheet):
    return BlockRegistry({"Command": command, "Sheet": sheet})


@pytest.fixture
def selector(library):
    return SelectorBlock(library)


@pytest.fixture
def document(selector):
    return DocumentBlock(selector)


@pytest.fixture
def toplevel(document):
    return HistoryBlock(document)
