"""
Base Worker Framework.

Defines the capability every critic worker implements. Workers are built
and registered by the host application; the engine only calls them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from critique.core.models.worker import Complexity, Tier, Urgency, WorkerReport
from critique.utils.logging import get_logger

logger = get_logger("agents.base")

ProgressSink = Callable[[dict[str, Any]], Any]
AnalyzeResult = Union[WorkerReport, Mapping[str, Any]]


# ============================================================================
# Analysis Request
# ============================================================================


@dataclass
class AnalysisRequest:
    """Options handed to a worker alongside the document.

    Attributes:
        complexity: ``low`` for the fast tier, ``high`` for research
        urgency: How soon the caller needs feedback
        budget: Cost budget tag (``minimal``, ``standard``, ``premium``...)
        on_progress: Optional sink for partial-progress payloads
        phase: Tier the call belongs to
        context: Free-form extra context for the worker
    """

    complexity: Complexity = Complexity.LOW
    urgency: Urgency = Urgency.NORMAL
    budget: str = "standard"
    on_progress: Optional[ProgressSink] = None
    phase: Tier = Tier.FAST
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def streaming(self) -> bool:
        return self.on_progress is not None

    def report_progress(self, **progress: Any) -> None:
        """Forward a partial-progress payload if a sink is attached."""
        if self.on_progress is not None:
            self.on_progress(dict(progress))


# ============================================================================
# Base Worker
# ============================================================================


class Worker(ABC):
    """Base class for critic workers.

    Each worker has:
    - a unique ``worker_id``
    - a ``tier`` affinity (fast heuristics or slow research)
    - an async ``analyze`` resolving to a ``WorkerReport`` (or a mapping
      with ``insights`` and optional ``confidence``)

    Usage:
        class PassiveVoiceWorker(Worker):
            tier = Tier.FAST

            async def analyze(self, document, request):
                return WorkerReport(insights=[...], confidence=0.7)
    """

    tier: Tier = Tier.FAST
    name: str = ""

    def __init__(self, worker_id: str, tier: Tier | None = None, name: str | None = None):
        self.worker_id = worker_id
        self.tier = Tier(tier if tier is not None else self.tier)
        self.name = name or self.name or worker_id

    @abstractmethod
    async def analyze(self, document: str, request: AnalysisRequest) -> AnalyzeResult:
        """Analyze a document.

        Raise any exception to signal failure; its message is recorded.
        """

    def log(self, message: str, level: str = "info") -> None:
        log_func = getattr(logger, level, logger.info)
        log_func(f"[{self.worker_id}] {message}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(worker_id={self.worker_id!r}, tier={self.tier.value!r})"


class CallableWorker(Worker):
    """Adapter turning a plain async function into a worker."""

    def __init__(
        self,
        worker_id: str,
        func: Callable[[str, AnalysisRequest], Awaitable[AnalyzeResult]],
        tier: Tier = Tier.FAST,
        name: str | None = None,
    ):
        super().__init__(worker_id, tier=tier, name=name)
        self._func = func

    async def analyze(self, document: str, request: AnalysisRequest) -> AnalyzeResult:
        return await self._func(document, request)
