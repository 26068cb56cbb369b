"""
Insight model: one finding reported by a critic worker.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from critique.core.models.anchor import TextAnchor


class Priority(str, Enum):
    """Priority levels workers attach to insights."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_WEIGHTS: dict[str, int] = {
    Priority.HIGH.value: 3,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 1,
}

DEFAULT_CONFIDENCE = 0.5


def priority_rank(priority: str | None) -> int:
    """Numeric weight of a priority; unknown priorities rank as low."""
    if isinstance(priority, Priority):
        priority = priority.value
    return PRIORITY_WEIGHTS.get(priority or "", PRIORITY_WEIGHTS[Priority.LOW.value])


def generate_insight_id() -> str:
    return f"insight_{uuid.uuid4().hex[:12]}"


class Insight(BaseModel):
    """A single critic finding.

    Workers may attach arbitrary extra fields; they are kept verbatim.
    Anchors may arrive as ``anchors`` or ``positions``, quoted text as
    ``text_snippets`` or ``textSnippets``.
    """

    id: str = Field(default_factory=generate_insight_id)
    type: str = Field(default="general", description="Category tag")
    priority: str = Field(default=Priority.MEDIUM.value)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    title: str = ""
    feedback: str = ""
    suggestion: str = ""
    anchors: list[TextAnchor] = Field(
        default_factory=list,
        validation_alias=AliasChoices("anchors", "positions"),
    )
    text_snippets: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("text_snippets", "textSnippets"),
    )

    # Provenance, filled in by the engine
    source_worker: Optional[str] = None
    enhancement: bool = False
    enhancement_type: Optional[str] = None

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def rank(self) -> int:
        return priority_rank(self.priority)

    @property
    def effective_confidence(self) -> float:
        return DEFAULT_CONFIDENCE if self.confidence is None else self.confidence

    def sort_key(self) -> tuple[int, float]:
        """Key ordering insights by priority, then confidence, both descending."""
        return (-self.rank, -self.effective_confidence)
