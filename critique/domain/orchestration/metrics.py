"""
Orchestration statistics: session outcomes, phase latencies and per-worker usage.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional


def _rolling(average: float, count: int, value: float) -> float:
    """Average after adding the ``count``-th sample."""
    if count <= 1:
        return value
    return average + (value - average) / count


@dataclass
class WorkerUsage:
    """Usage record for one worker."""

    tasks: int = 0
    successes: int = 0
    average_confidence: float = 0.0
    confidence_samples: int = 0
    average_latency: float = 0.0
    last_used: Optional[float] = None

    @property
    def success_rate(self) -> float:
        return self.successes / self.tasks if self.tasks else 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["success_rate"] = self.success_rate
        return data


@dataclass
class OrchestrationStats:
    """Counters kept by the session manager and its executor."""

    total_analyses: int = 0
    successful_analyses: int = 0
    failed_analyses: int = 0
    cancelled_analyses: int = 0
    average_fast_time: float = 0.0
    average_enhancement_time: float = 0.0
    research_attempts: int = 0
    enhancements: int = 0
    workers: dict[str, WorkerUsage] = field(default_factory=dict)

    @property
    def enhancement_success_rate(self) -> float:
        return self.enhancements / self.research_attempts if self.research_attempts else 0.0

    def record_fast(self, elapsed: float) -> None:
        self.successful_analyses += 1
        self.average_fast_time = _rolling(self.average_fast_time, self.successful_analyses, elapsed)

    def record_enhancement(self, elapsed: float) -> None:
        self.enhancements += 1
        self.average_enhancement_time = _rolling(self.average_enhancement_time, self.enhancements, elapsed)

    def record_worker(self, worker_id: str, success: bool, elapsed: float, confidence: float | None = None) -> None:
        usage = self.workers.setdefault(worker_id, WorkerUsage())
        usage.tasks += 1
        usage.last_used = time.time()
        usage.average_latency = _rolling(usage.average_latency, usage.tasks, elapsed)
        if success:
            usage.successes += 1
            if confidence is not None:
                usage.confidence_samples += 1
                usage.average_confidence = _rolling(
                    usage.average_confidence, usage.confidence_samples, confidence
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_analyses": self.total_analyses,
            "successful_analyses": self.successful_analyses,
            "failed_analyses": self.failed_analyses,
            "cancelled_analyses": self.cancelled_analyses,
            "average_fast_time": self.average_fast_time,
            "average_enhancement_time": self.average_enhancement_time,
            "enhancement_success_rate": self.enhancement_success_rate,
            "workers": {worker_id: usage.to_dict() for worker_id, usage in self.workers.items()},
        }
