"""
Text anchors: character ranges that tie an insight to a document version.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TextAnchor(BaseModel):
    """Half-open range ``[start, end)`` into one document version.

    Attributes:
        start: First character offset covered by the anchor
        end: Offset one past the last covered character
        text: Literal document text the range denotes
        similarity: Match score when the anchor came from a fuzzy search
        original_snippet: The snippet the anchor was derived from
        snippet_index: Index of that snippet in the searched list
        inferred: Anchor was located from an insight's title/feedback
        fallback: Anchor is a placeholder over the document head
    """

    start: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str = ""
    similarity: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    original_snippet: Optional[str] = Field(
        default=None,
        validation_alias="originalSnippet",
    )
    snippet_index: Optional[int] = None
    inferred: bool = False
    fallback: bool = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _check_range(self) -> "TextAnchor":
        if self.end < self.start:
            raise ValueError(f"anchor end {self.end} precedes start {self.start}")
        return self

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TextAnchor") -> bool:
        return self.start < other.end and other.start < self.end

    def within(self, document_length: int) -> bool:
        return self.end <= document_length

    def moved(self, start: int, end: int, document: str | None = None) -> "TextAnchor":
        """Copy of this anchor over a new range, refreshing text when a document is given."""
        update: dict = {"start": start, "end": end}
        if document is not None:
            update["text"] = document[start:end]
        return self.model_copy(update=update)

    def __str__(self) -> str:
        return f"[{self.start}, {self.end}) {self.text!r}"
