"""
Insight anchor resolution.

Workers report what they found, but not always where. This module turns
quoted snippets (or, failing that, the insight's own wording) into
anchors on the document the insight was produced for.
"""

from __future__ import annotations

from typing import Sequence

from critique.app.config import AnchoringConfig
from critique.core.models.anchor import TextAnchor
from critique.core.models.insight import Insight
from critique.domain.anchoring.similarity import SimilarityMatcher
from critique.utils.logging import get_logger

logger = get_logger(__name__)

# Shorter titles/feedback are too generic to locate reliably
MIN_INFERENCE_LENGTH = 10


class AnchorResolver:
    """Attaches anchors to insights and relocates stale ones."""

    def __init__(self, config: AnchoringConfig | None = None):
        self.config = config or AnchoringConfig()
        self.matcher = SimilarityMatcher(
            threshold=self.config.similarity_threshold,
            min_window=self.config.min_window,
        )

    def resolve(self, insight: Insight, document: str) -> Insight:
        """Copy of ``insight`` carrying at least one anchor into ``document``."""
        if insight.anchors:
            return insight

        anchors: list[TextAnchor] = []
        if insight.text_snippets:
            anchors = self.matcher.find_all(document, insight.text_snippets, self.config.snippet_threshold)

        if not anchors:
            anchors = self._infer(insight, document)

        if not anchors:
            end = min(len(document), self.config.fallback_span)
            anchors = [TextAnchor(start=0, end=end, text=document[:end], fallback=True)]
            logger.debug(f"Insight {insight.id} anchored to document head")

        return insight.model_copy(update={"anchors": anchors})

    def _infer(self, insight: Insight, document: str) -> list[TextAnchor]:
        for text in (insight.title, insight.feedback):
            if len(text) <= MIN_INFERENCE_LENGTH:
                continue
            matches = self.matcher.find(document, text, self.config.inferred_threshold)
            if matches:
                return [matches[0].model_copy(update={"inferred": True})]
        return []

    def resolve_all(self, insights: Sequence[Insight], document: str) -> list[Insight]:
        return [self.resolve(insight, document) for insight in insights]

    def reanchor(
        self,
        anchors: Sequence[TextAnchor],
        document: str,
        threshold: float | None = None,
    ) -> list[TextAnchor]:
        """Relocate anchors whose stored text no longer matches the document.

        Anchors still pointing at their text are kept; the rest are searched
        for by their original snippet (or stored text) and dropped if absent.
        """
        threshold = self.config.similarity_threshold if threshold is None else threshold
        result: list[TextAnchor] = []
        for anchor in anchors:
            if anchor.within(len(document)) and document[anchor.start:anchor.end] == anchor.text:
                result.append(anchor)
                continue

            needle = anchor.original_snippet or anchor.text
            candidates = [
                m for m in self.matcher.find(document, needle, threshold)
                if not any(m.overlaps(kept) for kept in result)
            ]
            if not candidates:
                logger.debug(f"Dropping anchor {anchor}: text not found")
                continue

            best = min(candidates, key=lambda m: (-(m.similarity or 0.0), abs(m.start - anchor.start)))
            result.append(
                anchor.model_copy(
                    update={
                        "start": best.start,
                        "end": best.end,
                        "text": best.text,
                        "similarity": best.similarity,
                        "original_snippet": needle,
                    }
                )
            )
        return sorted(result, key=lambda a: (a.start, a.end))


def resolve_insight_anchors(
    insights: Sequence[Insight],
    document: str,
    config: AnchoringConfig | None = None,
) -> list[Insight]:
    return AnchorResolver(config).resolve_all(insights, document)


def reanchor(
    anchors: Sequence[TextAnchor],
    document: str,
    threshold: float | None = None,
    config: AnchoringConfig | None = None,
) -> list[TextAnchor]:
    return AnchorResolver(config).reanchor(anchors, document, threshold)
