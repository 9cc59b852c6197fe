"""
Blockbook Kernel — Persisted JSON Shapes

Pydantic models for every JSON shape a block reads back from storage.
Validation is structural (well-formed?) not semantic (does the selector
expression resolve?). The blocks handle the semantic side.

A failed check surfaces as the kernel's own ValidationError, carrying the
dotted path of the first offending field so callers can report it.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, StrictInt
from pydantic import ValidationError as PydanticValidationError


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ValidationError(Exception):
    """Persisted JSON does not have the expected shape."""

    def __init__(self, message: str, path: tuple[str | int, ...] = ()):
        self.path = tuple(path)
        self.message = message
        super().__init__(f"{self.location}: {message}" if self.path else message)

    @property
    def location(self) -> str:
        return ".".join(str(segment) for segment in self.path)

    def within(self, *segments: str | int) -> ValidationError:
        """The same error, seen from an enclosing JSON document."""
        return ValidationError(self.message, (*segments, *self.path))

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError) -> ValidationError:
        details = error.errors()
        first = details[0]
        message = first["msg"]
        if len(details) > 1:
            message += f" (and {len(details) - 1} more)"
        return cls(message, tuple(first["loc"]))


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


class CommandJSON(BaseModel):
    model_config = {"extra": "forbid"}

    expr: str


class EntryJSON(BaseModel):
    """One page of a document (children make it a tree)."""

    model_config = {"extra": "forbid"}

    id: StrictInt = Field(ge=0)
    name: str
    state: Any
    children: list[EntryJSON] | None = None
    collapsed: bool | None = None


class SheetLineJSON(BaseModel):
    model_config = {"extra": "forbid"}

    id: StrictInt = Field(ge=0)
    name: str
    visibility: Literal["block", "result", "hidden"] = "block"
    state: Any


class SheetJSON(BaseModel):
    model_config = {"extra": "forbid"}

    lines: list[SheetLineJSON]


class SelectorJSON(BaseModel):
    model_config = {"extra": "forbid"}

    mode: Literal["run", "choose"]
    expr: str
    inner: Any = None


class HistoryEntryJSON(BaseModel):
    model_config = {"extra": "forbid"}

    time: int
    state: Any
    prev: int | None = None


class HistoryWrapperJSON(BaseModel):
    model_config = {"extra": "forbid"}

    history: list[HistoryEntryJSON] = Field(min_length=1)
    inner: Any


class DocumentJSON(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = "Untitled"
    pages: list[EntryJSON]
    open_page: list[StrictInt] = Field(default_factory=list)
    template: EntryJSON | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

M = TypeVar("M", bound=BaseModel)


def validate(model: type[M], data: Any) -> M:
    """Parse `data` into `model`, raising the kernel ValidationError on mismatch."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e
