"""
Document edit records produced by the change detector.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class EditType(str, Enum):
    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


class DocumentEdit(BaseModel):
    """The single edited region between two document versions.

    ``start`` is shared by both versions; ``old_end`` bounds the replaced
    text in the old version and ``new_end`` the inserted text in the new one.
    """

    type: EditType
    start: int = Field(ge=0)
    old_end: int = Field(ge=0)
    new_end: int = Field(ge=0)
    old_text: str = ""
    new_text: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def length_delta(self) -> int:
        return (self.new_end - self.start) - (self.old_end - self.start)

    @property
    def old_range(self) -> tuple[int, int]:
        return (self.start, self.old_end)

    @property
    def new_range(self) -> tuple[int, int]:
        return (self.start, self.new_end)

    def describe(self) -> str:
        """Human-readable one-liner, used when handing edits to an evaluator."""
        if self.type is EditType.INSERT:
            return f'Inserted "{self.new_text}" at position {self.start}'
        if self.type is EditType.DELETE:
            return f'Deleted "{self.old_text}" from position {self.start}-{self.old_end}'
        return (
            f'Replaced "{self.old_text}" with "{self.new_text}" '
            f"at position {self.start}-{self.new_end}"
        )


class ChangeAnalysis(BaseModel):
    """Result of comparing a new document snapshot with the previous one."""

    type: Literal["initial", "update"]
    changes: list[DocumentEdit] = Field(default_factory=list)


class ChangeRecord(BaseModel):
    """One entry of the detector's bounded change history."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    previous_length: int
    current_length: int
    changes: list[DocumentEdit] = Field(default_factory=list)
