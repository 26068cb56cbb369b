"""
Suggestion model: the UI-facing wrapper around anchored insights.

Status only ever moves forward out of ``active``; resolved, retracted and
dismissed suggestions are never reactivated.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from critique.core.errors import InvalidSuggestionTransition
from critique.core.models.anchor import TextAnchor
from critique.core.models.insight import Insight


class SuggestionStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    RETRACTED = "retracted"
    DISMISSED = "dismissed"

    @property
    def is_terminal(self) -> bool:
        return self is not SuggestionStatus.ACTIVE


def generate_suggestion_id() -> str:
    return f"suggestion_{uuid.uuid4().hex[:12]}"


class Suggestion(BaseModel):
    """Anchored insight(s) tracked against the live document."""

    id: str = Field(default_factory=generate_suggestion_id)
    insights: list[Insight] = Field(default_factory=list)
    anchors: list[TextAnchor] = Field(default_factory=list)
    status: SuggestionStatus = SuggestionStatus.ACTIVE
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    retracted_reason: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    dismissed_at: Optional[datetime] = None
    evaluation: Optional[dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _active_needs_anchor(self) -> "Suggestion":
        if self.status is SuggestionStatus.ACTIVE and not self.anchors:
            raise ValueError("an active suggestion needs at least one anchor")
        return self

    @classmethod
    def from_insight(cls, insight: Insight, anchors: list[TextAnchor] | None = None) -> "Suggestion":
        return cls(insights=[insight], anchors=list(anchors if anchors is not None else insight.anchors))

    @property
    def is_active(self) -> bool:
        return self.status is SuggestionStatus.ACTIVE

    @property
    def primary(self) -> Optional[Insight]:
        return self.insights[0] if self.insights else None

    @property
    def title(self) -> str:
        return self.primary.title if self.primary else ""

    @property
    def type(self) -> str:
        return self.primary.type if self.primary else "general"

    def anchors_valid_for(self, document: str) -> bool:
        return any(anchor.within(len(document)) for anchor in self.anchors)

    # ------------------------------------------------------------------
    # Transitions (return new instances)
    # ------------------------------------------------------------------

    def _transition(self, status: SuggestionStatus, **fields: Any) -> "Suggestion":
        if status is self.status:
            return self
        if self.status.is_terminal:
            raise InvalidSuggestionTransition(self.id, self.status.value, status.value)
        return self.model_copy(update={"status": status, **fields})

    def resolve(self, by: str = "user", evaluation: dict[str, Any] | None = None) -> "Suggestion":
        return self._transition(
            SuggestionStatus.RESOLVED,
            resolved_at=datetime.now(UTC),
            resolved_by=by,
            evaluation=evaluation if evaluation is not None else self.evaluation,
        )

    def retract(self, reason: str, evaluation: dict[str, Any] | None = None) -> "Suggestion":
        return self._transition(
            SuggestionStatus.RETRACTED,
            retracted_reason=reason,
            evaluation=evaluation if evaluation is not None else self.evaluation,
        )

    def dismiss(self) -> "Suggestion":
        return self._transition(SuggestionStatus.DISMISSED, dismissed_at=datetime.now(UTC))

    def with_anchors(self, anchors: list[TextAnchor]) -> "Suggestion":
        if self.is_active and not anchors:
            raise ValueError(f"suggestion {self.id} would be left active without anchors")
        return self.model_copy(update={"anchors": list(anchors)})

    def with_evaluation(self, evaluation: dict[str, Any]) -> "Suggestion":
        return self.model_copy(update={"evaluation": evaluation})
