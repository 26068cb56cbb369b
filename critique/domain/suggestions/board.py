"""
Suggestion Board.

Keeps the suggestions shown for one live document in step with edits:
anchors are remapped on every change, and suggestions whose text was
touched can be handed to an external evaluator that decides whether the
user has addressed them.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal, Mapping, Protocol, Sequence

from pydantic import BaseModel, Field, field_validator

from critique.app.config import AnchoringConfig
from critique.core.event_bus import EventBus
from critique.core.events import TOPIC_SUGGESTION_RESOLVED, TOPIC_SUGGESTION_RETRACTED, create_suggestion_event
from critique.core.models.anchor import TextAnchor
from critique.core.models.document import DocumentEdit
from critique.core.models.result import AnalysisResult
from critique.core.models.suggestion import Suggestion, SuggestionStatus
from critique.domain.anchoring.change_detector import TextChangeDetector
from critique.domain.anchoring.resolver import AnchorResolver
from critique.utils.logging import get_logger

logger = get_logger(__name__)


class SuggestionEvaluator(Protocol):
    """External judge of whether an edited suggestion still applies."""

    async def evaluate(
        self,
        suggestion: Suggestion,
        original_text: str,
        current_text: str,
        changes: Sequence[DocumentEdit],
    ) -> Mapping[str, Any]:
        """Return ``{"status": "resolved"|"retracted"|"active", "confidence", "reasoning"}``."""
        ...


class EvaluationVerdict(BaseModel):
    status: Literal["resolved", "retracted", "active"]
    confidence: float = 0.5
    reasoning: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        if value is None:
            return 0.5
        return max(0.0, min(1.0, float(value)))


UNAVAILABLE_VERDICT = EvaluationVerdict(
    status="active",
    confidence=0.2,
    reasoning="Evaluation unavailable, keeping suggestion active",
)


class SuggestionBoard:
    """Suggestions for one document, kept valid across edits."""

    def __init__(
        self,
        detector: TextChangeDetector | None = None,
        evaluator: SuggestionEvaluator | None = None,
        config: AnchoringConfig | None = None,
        event_bus: EventBus | None = None,
    ):
        self.config = config or AnchoringConfig()
        self.detector = detector or TextChangeDetector(self.config)
        self.resolver = AnchorResolver(self.config)
        self.evaluator = evaluator
        self.event_bus = event_bus
        self.document: str | None = None
        self._suggestions: dict[str, Suggestion] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, suggestion_id: str) -> Suggestion | None:
        return self._suggestions.get(suggestion_id)

    def active(self) -> list[Suggestion]:
        return [s for s in self._suggestions.values() if s.is_active]

    def all(self) -> list[Suggestion]:
        return list(self._suggestions.values())

    def __len__(self) -> int:
        return len(self._suggestions)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_result(self, result: AnalysisResult, document: str) -> list[Suggestion]:
        """Create active suggestions from a result produced for ``document``.

        The first result fixes the tracked text. A result for any other
        snapshot (typically research output for the text as it was when the
        analysis started) has its anchors carried into the tracked text;
        insights whose text is gone from it are skipped.
        """
        tracked = self.detector.previous_text
        if tracked is None:
            self.detector.analyze_changes(document)
            self.document = tracked = document

        catch_up = self.detector.detect_changes(document, tracked)

        created = []
        for insight in self.resolver.resolve_all(result.insights, document):
            if catch_up:
                anchors = self._carry_forward(insight.anchors, catch_up, tracked)
                if not anchors:
                    logger.debug(f"Skipping insight {insight.id}: anchored text no longer present")
                    continue
                insight = insight.model_copy(update={"anchors": anchors})
            suggestion = Suggestion.from_insight(insight)
            self._suggestions[suggestion.id] = suggestion
            created.append(suggestion)

        logger.info(f"Added {len(created)} suggestion(s) from {result.analysis_phase} result")
        return created

    def dismiss(self, suggestion_id: str) -> Suggestion:
        return self._store(self._require(suggestion_id).dismiss())

    def resolve(self, suggestion_id: str, by: str = "user") -> Suggestion:
        return self._store(self._require(suggestion_id).resolve(by=by))

    async def document_changed(self, new_document: str) -> list[Suggestion]:
        """Apply an edit to every active suggestion.

        Returns:
            Suggestions whose anchors or status changed
        """
        analysis = self.detector.analyze_changes(new_document)
        original = self.document if self.document is not None else new_document
        self.document = new_document
        if analysis.type == "initial" or not analysis.changes:
            return []

        changes = analysis.changes
        before = {s.id: s for s in self.active()}
        for suggestion in self.detector.update_anchors(list(before.values()), changes, document=new_document):
            self._store(suggestion)
            if not suggestion.is_active:
                await self._announce(suggestion)

        if self.evaluator is not None:
            candidates = [
                s for s in self.active()
                if self.detector.needs_re_evaluation(s, changes)
            ]
            if candidates:
                await asyncio.gather(
                    *(self._evaluate(s, original, new_document, changes) for s in candidates)
                )

        return [s for s in self._suggestions.values() if s.id in before and s != before[s.id]]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    async def _evaluate(
        self,
        suggestion: Suggestion,
        original: str,
        current: str,
        changes: Sequence[DocumentEdit],
    ) -> None:
        relevant = self.detector.relevant_changes(suggestion, changes)
        try:
            raw = await self.evaluator.evaluate(suggestion, original, current, relevant)
            verdict = EvaluationVerdict.model_validate(dict(raw))
        except Exception as exc:
            logger.warning(f"Evaluation of {suggestion.id} failed, keeping it active: {exc}")
            verdict = UNAVAILABLE_VERDICT

        latest = self._suggestions.get(suggestion.id)
        if latest is None or not latest.is_active:
            # Dismissed or resolved while the evaluator ran
            return

        evaluation = verdict.model_dump()
        if verdict.status == SuggestionStatus.RESOLVED.value:
            updated = latest.resolve(by="evaluator", evaluation=evaluation)
        elif verdict.status == SuggestionStatus.RETRACTED.value:
            updated = latest.retract(verdict.reasoning or "Retracted by evaluator", evaluation=evaluation)
        else:
            updated = latest.with_evaluation(evaluation)

        self._store(updated)
        if not updated.is_active:
            await self._announce(updated)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _carry_forward(
        self,
        anchors: Sequence[TextAnchor],
        changes: Sequence[DocumentEdit],
        tracked: str,
    ) -> list[TextAnchor]:
        """Move anchors from their own snapshot into ``tracked``.

        Offsets are remapped across the edit first; anchors the edit
        invalidated, or whose text the remapped range misses, are relocated
        by fuzzy search in ``tracked``.
        """
        moved = []
        for anchor in anchors:
            remapped = anchor
            for edit in changes:
                remapped = self.detector.remap_anchor(remapped, edit)
                if remapped is None:
                    break
            moved.append(remapped if remapped is not None else anchor)
        return self.resolver.reanchor(moved, tracked)

    def _require(self, suggestion_id: str) -> Suggestion:
        suggestion = self._suggestions.get(suggestion_id)
        if suggestion is None:
            raise KeyError(f"Unknown suggestion: {suggestion_id}")
        return suggestion

    def _store(self, suggestion: Suggestion) -> Suggestion:
        self._suggestions[suggestion.id] = suggestion
        return suggestion

    async def _announce(self, suggestion: Suggestion) -> None:
        if suggestion.status is SuggestionStatus.RETRACTED:
            logger.info(f"Suggestion {suggestion.id} retracted: {suggestion.retracted_reason}")
            topic = TOPIC_SUGGESTION_RETRACTED
        elif suggestion.status is SuggestionStatus.RESOLVED:
            logger.info(f"Suggestion {suggestion.id} resolved by {suggestion.resolved_by}")
            topic = TOPIC_SUGGESTION_RESOLVED
        else:
            return
        if self.event_bus is not None:
            await self.event_bus.publish(
                topic,
                create_suggestion_event(suggestion.id, suggestion.status.value, suggestion.retracted_reason),
            )
