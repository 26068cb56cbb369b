"""
Result aggregation and fusion.

- ``aggregate_results`` folds one tier's outcomes into an AnalysisResult
  and reports (but does not resolve) disagreements between workers.
- ``combine_results`` merges the fast result with research outcomes.
  Research insights are tagged as enhancements and weighted more
  heavily in the combined confidence.

Nothing here mutates its inputs.
"""

from __future__ import annotations

import re
from itertools import combinations
from statistics import fmean
from typing import Iterable, Sequence

from critique.core.models.insight import DEFAULT_CONFIDENCE, Insight
from critique.core.models.result import AnalysisPhase, AnalysisResult, Conflict, Improvements, WorkerSource
from critique.domain.orchestration.executor import WorkerOutcome
from critique.utils.logging import get_logger

logger = get_logger(__name__)

FAST_WEIGHT = 0.3
RESEARCH_WEIGHT = 0.7

CONFIDENCE_MISMATCH = 0.4
TITLE_SIMILARITY = 0.7
CONSENSUS_CONFIDENCE = 0.7

OPPOSING_PAIRS = (
    ("good", "bad"),
    ("correct", "incorrect"),
    ("appropriate", "inappropriate"),
    ("clear", "unclear"),
    ("strong", "weak"),
    ("effective", "ineffective"),
)

ENHANCEMENT_TYPE = "research_depth"

_WORD = re.compile(r"\w+")


def _sorted(insights: Iterable[Insight]) -> list[Insight]:
    return sorted(insights, key=lambda insight: insight.sort_key())


def _words(text: str) -> set[str]:
    return set(_WORD.findall(text.lower()))


def jaccard(first: str, second: str) -> float:
    a, b = _words(first), _words(second)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def contradicts(first: str, second: str) -> bool:
    """Whether two feedback texts take opposite sides of a known word pair."""
    a, b = _words(first), _words(second)
    return any(
        (p in a and q in b) or (q in a and p in b)
        for p, q in OPPOSING_PAIRS
    )


# ============================================================================
# Tier aggregation
# ============================================================================


def detect_conflicts(outcomes: Sequence[WorkerOutcome]) -> list[Conflict]:
    conflicts: list[Conflict] = []
    for first, second in combinations(outcomes, 2):
        workers = (first.worker_id, second.worker_id)

        if first.confidence is not None and second.confidence is not None:
            gap = abs(first.confidence - second.confidence)
            if gap > CONFIDENCE_MISMATCH:
                conflicts.append(
                    Conflict(
                        type="confidence_mismatch",
                        workers=workers,
                        details=f"Confidence differs by {gap:.2f}",
                    )
                )

        for a in first.insights:
            for b in second.insights:
                similarity = jaccard(a.title, b.title)
                if similarity > TITLE_SIMILARITY and contradicts(a.feedback, b.feedback):
                    conflicts.append(
                        Conflict(
                            type="contradictory_insights",
                            workers=workers,
                            details=f"'{a.title}' vs '{b.title}'",
                            similarity=similarity,
                            insight_ids=(a.id, b.id),
                        )
                    )
    return conflicts


def aggregate_results(
    outcomes: Sequence[WorkerOutcome],
    consensus: bool = False,
    phase: AnalysisPhase = "fast",
) -> AnalysisResult:
    """Fold successful outcomes of one tier into a ranked result.

    Args:
        outcomes: Successful worker outcomes
        consensus: Drop low-confidence insights involved in a contradiction
        phase: Phase tag for the result
    """
    insights = [
        insight.model_copy(update={"source_worker": outcome.worker_id}, deep=True)
        for outcome in outcomes
        for insight in outcome.insights
    ]

    present = [o.confidence for o in outcomes if o.confidence]
    confidence = fmean(present) if present else DEFAULT_CONFIDENCE

    conflicts = detect_conflicts(outcomes)
    if consensus:
        disputed = {
            insight_id
            for conflict in conflicts
            if conflict.type == "contradictory_insights"
            for insight_id in conflict.insight_ids
        }
        insights = [
            i for i in insights
            if i.id not in disputed or i.effective_confidence >= CONSENSUS_CONFIDENCE
        ]

    if conflicts:
        logger.debug(f"{len(conflicts)} conflict(s) between {phase} workers")

    return AnalysisResult(
        insights=_sorted(insights),
        confidence=confidence,
        sources=[
            WorkerSource(worker_id=o.worker_id, confidence=o.confidence)
            for o in outcomes
        ],
        conflicts=conflicts,
        analysis_phase=phase,
        agent_count=len(outcomes),
        total_agents=len(outcomes),
    )


# ============================================================================
# Fast/research fusion
# ============================================================================


def calculate_combined_confidence(fast_confidence: float, research_confidences: Iterable[float | None]) -> float:
    """``0.3 * fast + 0.7 * mean(research)``; fast alone without research confidences.

    A research worker that reported no confidence (None or 0) is left out of
    the mean rather than counted at a default; its ``WorkerSource`` entry
    records the confidence exactly as reported.
    """
    present = [c for c in research_confidences if c is not None and c > 0]
    if not present:
        return fast_confidence
    return FAST_WEIGHT * fast_confidence + RESEARCH_WEIGHT * fmean(present)


def combine_results(
    fast: AnalysisResult,
    research: Sequence[WorkerOutcome],
    processing_time: float | None = None,
) -> AnalysisResult:
    """Merge the fast result with research outcomes into one ranked result.

    With no research outcomes the fast result comes back unchanged.
    """
    if not research:
        return fast.model_copy(deep=True)

    enhancements = [
        insight.model_copy(
            update={
                "enhancement": True,
                "enhancement_type": ENHANCEMENT_TYPE,
                "source_worker": outcome.worker_id,
            },
            deep=True,
        )
        for outcome in research
        for insight in outcome.insights
    ]
    insights = _sorted([*(i.model_copy(deep=True) for i in fast.insights), *enhancements])

    sources = [s.model_copy() for s in fast.sources] + [
        WorkerSource(worker_id=o.worker_id, confidence=o.confidence)
        for o in research
    ]

    return AnalysisResult(
        insights=insights,
        confidence=calculate_combined_confidence(fast.confidence, (o.confidence for o in research)),
        sources=sources,
        conflicts=[c.model_copy() for c in fast.conflicts],
        analysis_phase="enhanced",
        processing_time=fast.processing_time if processing_time is None else processing_time,
        agent_count=fast.agent_count + len(research),
        enhancement_sources=[o.worker_id for o in research],
        total_agents=fast.agent_count + len(research),
    )


def find_new_categories(before: AnalysisResult, after: AnalysisResult) -> list[str]:
    known = set(before.categories)
    return [category for category in after.categories if category not in known]


def calculate_improvements(fast: AnalysisResult, fused: AnalysisResult) -> Improvements:
    """What fusion added on top of the fast result."""
    return Improvements(
        insight_count=len(fused.insights) - len(fast.insights),
        confidence_improvement=fused.confidence - fast.confidence,
        new_categories=find_new_categories(fast, fused),
        enhanced_capabilities=list(fused.enhancement_sources),
    )
