"""
Worker-facing enums and the report a worker resolves to.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from critique.core.models.insight import Insight


class Tier(str, Enum):
    """Worker tiers: quick heuristics vs. slow deep research."""

    FAST = "fast"
    RESEARCH = "research"


class Urgency(str, Enum):
    """How soon the caller needs feedback."""

    REALTIME = "realtime"   # Feedback while typing
    HIGH = "high"           # User actively waiting
    NORMAL = "normal"       # Background analysis


class Complexity(str, Enum):
    """Thoroughness hint passed to workers."""

    LOW = "low"
    HIGH = "high"


COMPLEXITY_BY_TIER = {
    Tier.FAST: Complexity.LOW,
    Tier.RESEARCH: Complexity.HIGH,
}


class WorkerReport(BaseModel):
    """What a worker's ``analyze`` resolves to."""

    insights: list[Insight] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")
