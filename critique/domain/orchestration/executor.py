"""
Tiered Executor.

Runs one tier's workers concurrently against a document, isolates their
failures and enforces the tier deadline.

Timeout behaviour depends on the tier configuration:
- ``collect_stragglers=True`` (fast tier): after the deadline the executor
  waits once more, without a bound, for workers still in flight. Results
  are recovered at the cost of the strict deadline; the workers' own
  timeouts bound that wait in practice.
- ``collect_stragglers=False`` (research tier): outcomes settled before the
  deadline are kept and stragglers are cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from critique.agents.base import AnalysisRequest, ProgressSink, Worker
from critique.core.errors import AllWorkersFailed, NoWorkersAvailable, PartialTierFailure, TierTimeout
from critique.core.events import create_progress_event
from critique.core.models.insight import Insight
from critique.core.models.worker import COMPLEXITY_BY_TIER, Tier, Urgency, WorkerReport
from critique.domain.orchestration.metrics import OrchestrationStats
from critique.utils.logging import get_logger, log_operation

logger = get_logger(__name__)


# ============================================================================
# Records
# ============================================================================


@dataclass
class WorkerOutcome:
    """How one worker's call ended.

    ``processing_time`` is the tier tag (``fast``/``research``); the
    measured duration is in ``elapsed``.
    """

    worker_id: str
    success: bool
    report: Optional[WorkerReport] = None
    error: Optional[str] = None
    processing_time: str = Tier.FAST.value
    elapsed: float = 0.0

    @property
    def insights(self) -> list[Insight]:
        return self.report.insights if self.report is not None else []

    @property
    def confidence(self) -> Optional[float]:
        return self.report.confidence if self.report is not None else None


@dataclass
class TierConfig:
    """Per-call settings for one tier run."""

    tier: Tier
    timeout: float
    on_progress: Optional[ProgressSink] = None
    urgency: Urgency = Urgency.NORMAL
    budget: str = "standard"
    analysis_id: str = ""
    collect_stragglers: bool = True
    allow_empty_on_timeout: bool = False
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def fast(cls, timeout: float, **kwargs: Any) -> "TierConfig":
        return cls(tier=Tier.FAST, timeout=timeout, **kwargs)

    @classmethod
    def research(cls, timeout: float, **kwargs: Any) -> "TierConfig":
        kwargs.setdefault("collect_stragglers", False)
        kwargs.setdefault("allow_empty_on_timeout", True)
        return cls(tier=Tier.RESEARCH, timeout=timeout, **kwargs)


@dataclass
class TierResult:
    """Settled outcomes of one tier run."""

    tier: Tier
    successes: list[WorkerOutcome] = field(default_factory=list)
    failures: list[WorkerOutcome] = field(default_factory=list)
    elapsed: float = 0.0
    worker_count: int = 0
    timeout: Optional[TierTimeout] = None

    @property
    def timed_out(self) -> bool:
        return self.timeout is not None

    @property
    def partial_failure(self) -> Optional[PartialTierFailure]:
        if self.successes and self.failures:
            return PartialTierFailure(self.tier.value, self.failures, len(self.successes))
        return None

    @property
    def is_empty(self) -> bool:
        return not self.successes


# ============================================================================
# Executor
# ============================================================================


class TieredExecutor:
    """Runs worker tiers with failure isolation and deadlines."""

    def __init__(self, stats: OrchestrationStats | None = None):
        self.stats = stats or OrchestrationStats()

    async def execute(
        self,
        workers: Sequence[Worker],
        document: str,
        config: TierConfig,
    ) -> TierResult:
        """Run ``workers`` concurrently and settle them.

        Returns:
            TierResult with outcomes in worker order

        Raises:
            NoWorkersAvailable: empty fast tier
            AllWorkersFailed: no worker succeeded (an empty result is returned
                instead when the tier timed out and allows it)
        """
        tier = config.tier
        if not workers:
            if tier is Tier.FAST:
                raise NoWorkersAvailable(tier.value)
            return TierResult(tier=tier)

        started = time.perf_counter()
        log_operation(
            logger,
            f"{tier.value}_tier_start",
            {"analysis_id": config.analysis_id, "workers": [w.worker_id for w in workers]},
            level=logging.DEBUG,
        )

        tasks = [
            asyncio.create_task(
                self._run_worker(worker, document, config),
                name=f"{tier.value}:{worker.worker_id}",
            )
            for worker in workers
        ]

        timeout_error: TierTimeout | None = None
        try:
            _, pending = await asyncio.wait(tasks, timeout=config.timeout)
            if pending:
                timeout_error = TierTimeout(
                    tier.value,
                    config.timeout,
                    [w.worker_id for w, t in zip(workers, tasks) if t in pending],
                )
                logger.warning(str(timeout_error))
                if config.collect_stragglers:
                    await asyncio.wait(pending)
                else:
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        outcomes = [
            self._settled(worker, task, config)
            for worker, task in zip(workers, tasks)
        ]
        result = TierResult(
            tier=tier,
            successes=[o for o in outcomes if o.success],
            failures=[o for o in outcomes if not o.success],
            elapsed=time.perf_counter() - started,
            worker_count=len(workers),
            timeout=timeout_error,
        )

        if result.is_empty:
            if result.timed_out and config.allow_empty_on_timeout:
                logger.warning(f"{tier.value} tier produced no results before its deadline")
                return result
            error = AllWorkersFailed(tier.value, result.failures)
            logger.error(str(error))
            raise error

        if partial := result.partial_failure:
            logger.warning(str(partial))

        log_operation(
            logger,
            f"{tier.value}_tier_complete",
            {
                "analysis_id": config.analysis_id,
                "succeeded": len(result.successes),
                "failed": len(result.failures),
                "elapsed": f"{result.elapsed:.3f}s",
            },
            level=logging.DEBUG,
        )
        return result

    def _settled(self, worker: Worker, task: asyncio.Task, config: TierConfig) -> WorkerOutcome:
        if task.done() and not task.cancelled():
            return task.result()
        return WorkerOutcome(
            worker_id=worker.worker_id,
            success=False,
            error=f"Timed out after {config.timeout:.3f}s",
            processing_time=config.tier.value,
            elapsed=config.timeout,
        )

    async def _run_worker(self, worker: Worker, document: str, config: TierConfig) -> WorkerOutcome:
        """Call one worker; every failure becomes a failed outcome."""
        tier = config.tier
        request = AnalysisRequest(
            complexity=COMPLEXITY_BY_TIER[tier],
            urgency=config.urgency,
            budget=config.budget,
            on_progress=self._progress_sink(worker, config) if config.on_progress else None,
            phase=tier,
            context=dict(config.context),
        )

        started = time.perf_counter()
        try:
            raw = await worker.analyze(document, request)
            report = raw if isinstance(raw, WorkerReport) else WorkerReport.model_validate(raw)
        except ValidationError as exc:
            return self._failed(worker, tier, f"Invalid worker result: {exc.error_count()} validation error(s)", started)
        except Exception as exc:
            return self._failed(worker, tier, str(exc) or type(exc).__name__, started)

        elapsed = time.perf_counter() - started
        self.stats.record_worker(worker.worker_id, True, elapsed, report.confidence)
        worker.log(f"completed with {len(report.insights)} insight(s) in {elapsed:.3f}s", level="debug")
        return WorkerOutcome(
            worker_id=worker.worker_id,
            success=True,
            report=report,
            processing_time=tier.value,
            elapsed=elapsed,
        )

    def _failed(self, worker: Worker, tier: Tier, message: str, started: float) -> WorkerOutcome:
        elapsed = time.perf_counter() - started
        self.stats.record_worker(worker.worker_id, False, elapsed)
        logger.warning(f"Worker {worker.worker_id} ({tier.value}) failed: {message}")
        return WorkerOutcome(
            worker_id=worker.worker_id,
            success=False,
            error=message,
            processing_time=tier.value,
            elapsed=elapsed,
        )

    def _progress_sink(self, worker: Worker, config: TierConfig) -> ProgressSink:
        tier = config.tier.value

        def forward(progress: dict[str, Any]) -> None:
            payload = create_progress_event(
                config.analysis_id,
                worker.worker_id,
                f"{tier}_streaming",
                f"{tier}_insight",
                progress,
            )
            try:
                config.on_progress(payload)
            except Exception as exc:
                logger.exception(f"Progress sink failed for {worker.worker_id}", exc_info=exc)

        return forward
