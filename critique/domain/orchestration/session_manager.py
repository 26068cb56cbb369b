"""
Analysis Session Manager.

Drives a progressive analysis:
1. Select the fast and research worker pools.
2. Start the research tier in the background.
3. Await the fast tier and hand its result to the caller.
4. A detached continuation awaits research, fuses it with the fast
   result and finalizes the session.

Cancellation only stops delivery: in-flight workers keep running, but no
callback fires for a session that is no longer in the store.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Optional

from critique.agents.registry import WorkerRegistry
from critique.app.config import OrchestrationConfig
from critique.core.errors import ResearchPhaseFailure
from critique.core.event_bus import EventBus, EventPayload
from critique.core.events import (
    TOPIC_ANALYSIS_COMPLETE,
    TOPIC_ANALYSIS_ENHANCED,
    TOPIC_ANALYSIS_FAST_COMPLETE,
    TOPIC_ANALYSIS_PROGRESS,
    TOPIC_ANALYSIS_STAGE,
    create_stage_event,
)
from critique.core.models.result import AnalysisResult
from critique.core.models.worker import Urgency
from critique.domain.orchestration.executor import TierConfig, TieredExecutor
from critique.domain.orchestration.fusion import aggregate_results, calculate_improvements, combine_results
from critique.domain.orchestration.metrics import OrchestrationStats
from critique.domain.orchestration.session import (
    AnalysisSession,
    SessionStage,
    SessionStore,
    generate_analysis_id,
)
from critique.utils.logging import get_logger, log_error

logger = get_logger(__name__)

Callback = Callable[[dict[str, Any]], Any]


@dataclass
class AnalysisOptions:
    """Caller options for one analysis.

    Callbacks receive a single payload dict and may be plain functions or
    coroutine functions. Exceptions they raise are logged and ignored.
    """

    on_progress: Optional[Callback] = None
    on_fast_complete: Optional[Callback] = None
    on_enhancement_available: Optional[Callback] = None
    on_complete: Optional[Callback] = None
    urgency: Urgency = Urgency.NORMAL
    budget: Optional[str] = None
    max_parallel_agents: int = 3
    analysis_id: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)

    def callbacks(self) -> dict[str, Callback]:
        named = {
            "on_progress": self.on_progress,
            "on_fast_complete": self.on_fast_complete,
            "on_enhancement_available": self.on_enhancement_available,
            "on_complete": self.on_complete,
        }
        return {name: cb for name, cb in named.items() if cb is not None}


class AnalysisSessionManager:
    """Owns active analysis sessions for one engine instance."""

    def __init__(
        self,
        registry: WorkerRegistry,
        config: OrchestrationConfig | None = None,
        store: SessionStore | None = None,
        executor: TieredExecutor | None = None,
        event_bus: EventBus | None = None,
    ):
        self.registry = registry
        self.config = config or OrchestrationConfig()
        self.store = store if store is not None else SessionStore()
        self.executor = executor or TieredExecutor()
        self.stats: OrchestrationStats = self.executor.stats
        self.event_bus = event_bus
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    async def start(
        self,
        document: str,
        options: AnalysisOptions | None = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        """Run the fast tier and return its result; research continues in the background.

        Returns:
            ``{"analysis_id", "results", "stage", "enhancements_in_progress"}``

        Raises:
            NoWorkersAvailable: no fast worker is registered
            AllWorkersFailed: every fast worker failed
        """
        options = options or AnalysisOptions()
        if overrides:
            options = replace(options, **overrides)

        session = AnalysisSession(
            id=options.analysis_id or generate_analysis_id(),
            document=document,
            callbacks=options.callbacks(),
        )
        self.store.add(session)
        self.stats.total_analyses += 1

        budget = options.budget or self.config.default_budget
        urgency = Urgency(options.urgency)
        fast_cap = min(options.max_parallel_agents, self.config.fast_parallel_cap)
        research_cap = min(options.max_parallel_agents, self.config.research_parallel_cap)

        try:
            fast_workers = self.registry.select_fast(fast_cap)
            research_workers = self.registry.select_research(research_cap, budget)

            await self._transition(session, SessionStage.FAST_PHASE)

            if research_workers:
                research_config = TierConfig.research(
                    self.config.research_timeout,
                    on_progress=self._progress_sink(session),
                    urgency=Urgency.HIGH if urgency is Urgency.REALTIME else urgency,
                    budget=budget,
                    analysis_id=session.id,
                    context=options.context,
                )
                session.research_task = asyncio.create_task(
                    self.executor.execute(research_workers, document, research_config),
                    name=f"research:{session.id}",
                )

            fast_config = TierConfig.fast(
                self.config.fast_timeout,
                on_progress=self._progress_sink(session),
                urgency=urgency,
                budget=budget,
                analysis_id=session.id,
                context=options.context,
            )
            fast_tier = await self.executor.execute(fast_workers, document, fast_config)
        except asyncio.CancelledError:
            self._abandon_research(session)
            self.store.evict(session.id)
            raise
        except Exception as exc:
            self._abandon_research(session)
            await self._fail(session, exc)
            raise

        fast_result = aggregate_results(fast_tier.successes)
        fast_result.processing_time = session.elapsed
        session.fast_result = fast_result
        self.stats.record_fast(fast_tier.elapsed)

        if not self.store.holds(session):
            # Cancelled while the fast tier ran; research is left to settle unobserved
            session.continuation = self._spawn(self._continue(session), name=f"continuation:{session.id}")
            return {
                "analysis_id": session.id,
                "results": fast_result,
                "stage": session.stage.value,
                "enhancements_in_progress": False,
            }

        await self._transition(session, SessionStage.FAST_COMPLETE)
        payload = {
            "analysis_id": session.id,
            "results": fast_result,
            "processing_time": fast_result.processing_time,
            "stage": SessionStage.FAST_COMPLETE.value,
        }
        await self._notify(session, "on_fast_complete", TOPIC_ANALYSIS_FAST_COMPLETE, payload)

        session.continuation = self._spawn(self._continue(session), name=f"continuation:{session.id}")

        return {
            "analysis_id": session.id,
            "results": fast_result,
            "stage": SessionStage.FAST_COMPLETE.value,
            "enhancements_in_progress": True,
        }

    def get_status(self, analysis_id: str) -> dict[str, Any] | None:
        session = self.store.get(analysis_id)
        if session is None:
            return None
        return {
            "analysis_id": session.id,
            "stage": session.stage.value,
            "elapsed": session.elapsed,
            "has_fast_result": session.fast_result is not None,
            "research_results": sorted(session.research_results),
            "has_fused_result": session.fused_result is not None,
            "error": session.error,
        }

    def cancel(self, analysis_id: str) -> bool:
        """Stop delivering results for an analysis.

        Returns:
            True if a non-terminal session was cancelled and removed
        """
        session = self.store.get(analysis_id)
        if session is None or session.is_terminal:
            return False

        previous = session.advance(SessionStage.CANCELLED)
        self.store.evict(analysis_id)
        self.stats.cancelled_analyses += 1
        logger.info(f"Analysis {analysis_id} cancelled during {previous.value}")
        if self.event_bus is not None:
            self._spawn(
                self.event_bus.publish(
                    TOPIC_ANALYSIS_STAGE,
                    create_stage_event(analysis_id, previous.value, SessionStage.CANCELLED.value),
                )
            )
        return True

    def get_system_metrics(self) -> dict[str, Any]:
        metrics = self.stats.to_dict()
        metrics["active_sessions"] = len(self.store)
        metrics["registered_workers"] = len(self.registry)
        return metrics

    async def aclose(self) -> None:
        """Cancel background work and drop every session."""
        for session in self.store:
            if session.cleanup_handle is not None:
                session.cleanup_handle.cancel()
            self._abandon_research(session)
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.store.clear()

    # ------------------------------------------------------------------
    # Research continuation
    # ------------------------------------------------------------------

    async def _continue(self, session: AnalysisSession) -> None:
        fast_result = session.fast_result
        try:
            if session.research_task is None:
                await self._finalize(session, fast_result)
                return

            if self.store.holds(session):
                await self._transition(session, SessionStage.RESEARCH_PHASE)
                self.stats.research_attempts += 1

            try:
                research_tier = await session.research_task
            except Exception as exc:
                failure = ResearchPhaseFailure(session.id, exc)
                session.research_error = failure
                logger.warning(str(failure))
                await self._finalize(session, fast_result)
                return

            session.research_tier = research_tier
            if not self.store.holds(session):
                return
            if research_tier.is_empty:
                logger.info(f"Analysis {session.id}: no research results, finalizing with fast results")
                await self._finalize(session, fast_result)
                return

            session.research_results = {o.worker_id: o for o in research_tier.successes}
            await self._transition(session, SessionStage.ENHANCING)
            fused = combine_results(fast_result, research_tier.successes, processing_time=session.elapsed)
            session.fused_result = fused
            improvements = calculate_improvements(fast_result, fused)

            await self._transition(session, SessionStage.ENHANCED)
            self.stats.record_enhancement(research_tier.elapsed)
            await self._notify(
                session,
                "on_enhancement_available",
                TOPIC_ANALYSIS_ENHANCED,
                {
                    "analysis_id": session.id,
                    "results": fused,
                    "improvements": improvements,
                    "processing_time": fused.processing_time,
                    "stage": SessionStage.ENHANCED.value,
                },
            )
            await self._finalize(session, fused)
        except Exception as exc:
            log_error(logger, "research_continuation", exc, {"analysis_id": session.id})
            await self._fail(session, exc)

    async def _finalize(self, session: AnalysisSession, result: AnalysisResult | None) -> None:
        if not self.store.holds(session):
            return
        session.final_result = result
        await self._transition(session, SessionStage.COMPLETE)
        await self._notify(
            session,
            "on_complete",
            TOPIC_ANALYSIS_COMPLETE,
            {
                "analysis_id": session.id,
                "results": result,
                "enhanced": session.fused_result is not None,
                "processing_time": session.elapsed,
                "stage": SessionStage.COMPLETE.value,
            },
        )
        self._schedule_eviction(session)

    async def _fail(self, session: AnalysisSession, exc: BaseException) -> None:
        session.error = str(exc)
        self.stats.failed_analyses += 1
        if not self.store.holds(session) or session.is_terminal:
            return
        await self._transition(session, SessionStage.ERROR)
        self._schedule_eviction(session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transition(self, session: AnalysisSession, stage: SessionStage) -> None:
        previous = session.advance(stage)
        logger.debug(f"Analysis {session.id}: {previous.value} -> {stage.value}")
        await self._publish(TOPIC_ANALYSIS_STAGE, create_stage_event(session.id, previous.value, stage.value))

    def _schedule_eviction(self, session: AnalysisSession) -> None:
        loop = asyncio.get_running_loop()
        session.cleanup_handle = loop.call_later(self.config.cleanup_delay, self._evict, session)

    def _evict(self, session: AnalysisSession) -> None:
        if self.store.holds(session):
            self.store.evict(session.id)
            logger.debug(f"Evicted analysis {session.id}")

    def _abandon_research(self, session: AnalysisSession) -> None:
        task = session.research_task
        if task is None:
            return
        if task.done():
            if not task.cancelled():
                # Retrieve so a failed research tier is not reported as unhandled
                task.exception()
        else:
            task.cancel()

    def _spawn(self, coro: Awaitable[Any], name: str | None = None) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _progress_sink(self, session: AnalysisSession) -> Callback:
        def forward(payload: dict[str, Any]) -> None:
            if not self.store.holds(session) or session.is_terminal:
                return
            callback = session.callbacks.get("on_progress")
            if callback is not None:
                result = self._invoke(callback, payload, session.id)
                if inspect.isawaitable(result):
                    self._spawn(self._await_callback(result, "on_progress", session.id))
            if self.event_bus is not None:
                self._spawn(self.event_bus.publish(TOPIC_ANALYSIS_PROGRESS, payload))

        return forward

    async def _notify(
        self,
        session: AnalysisSession,
        name: str,
        topic: str,
        payload: EventPayload,
    ) -> None:
        callback = session.callbacks.get(name)
        if callback is not None:
            result = self._invoke(callback, payload, session.id)
            if inspect.isawaitable(result):
                await self._await_callback(result, name, session.id)
        await self._publish(topic, payload)

    def _invoke(self, callback: Callback, payload: dict[str, Any], analysis_id: str) -> Any:
        try:
            return callback(payload)
        except Exception as exc:
            logger.exception(f"Callback {getattr(callback, '__name__', callback)!s} failed for {analysis_id}", exc_info=exc)
            return None

    async def _await_callback(self, result: Awaitable[Any], name: str, analysis_id: str) -> None:
        try:
            await result
        except Exception as exc:
            logger.exception(f"Callback {name} failed for {analysis_id}", exc_info=exc)

    async def _publish(self, topic: str, payload: EventPayload) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(topic, payload)
