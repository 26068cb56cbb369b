"""
Aggregated analysis results as delivered to callers.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from critique.core.models.insight import DEFAULT_CONFIDENCE, Insight

AnalysisPhase = Literal["fast", "research", "enhanced"]


class WorkerSource(BaseModel):
    """One worker's contribution to a result; ``confidence`` is None when it reported none."""

    worker_id: str
    confidence: Optional[float] = None


class Conflict(BaseModel):
    """A disagreement between two workers, reported but not resolved."""

    type: Literal["confidence_mismatch", "contradictory_insights"]
    workers: tuple[str, str]
    details: str = ""
    similarity: Optional[float] = None
    insight_ids: tuple[str, ...] = ()


class AnalysisResult(BaseModel):
    """Ranked insights plus aggregate confidence for one tier or a fused set."""

    insights: list[Insight] = Field(default_factory=list)
    confidence: float = DEFAULT_CONFIDENCE
    sources: list[WorkerSource] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)
    analysis_phase: AnalysisPhase = "fast"
    processing_time: float = 0.0  # seconds since the session started
    agent_count: int = 0
    enhancement_sources: list[str] = Field(default_factory=list)
    total_agents: int = 0

    @property
    def categories(self) -> list[str]:
        """Insight categories in first-appearance order."""
        seen: dict[str, None] = {}
        for insight in self.insights:
            seen.setdefault(insight.type, None)
        return list(seen)


class Improvements(BaseModel):
    """What the research tier added on top of the fast result."""

    insight_count: int = 0
    confidence_improvement: float = 0.0
    new_categories: list[str] = Field(default_factory=list)
    enhanced_capabilities: list[str] = Field(default_factory=list)
