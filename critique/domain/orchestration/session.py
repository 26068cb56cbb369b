"""
Analysis sessions: per-analysis state and the store that owns them.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from critique.core.errors import InvalidStageTransition
from critique.core.models.result import AnalysisResult
from critique.domain.orchestration.executor import TierResult, WorkerOutcome


class SessionStage(str, Enum):
    INITIALIZING = "initializing"
    FAST_PHASE = "fast_phase"
    FAST_COMPLETE = "fast_complete"
    RESEARCH_PHASE = "research_phase"
    ENHANCING = "enhancing"
    ENHANCED = "enhanced"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES


TERMINAL_STAGES = frozenset({SessionStage.COMPLETE, SessionStage.ERROR, SessionStage.CANCELLED})

_EXITS = {SessionStage.ERROR, SessionStage.CANCELLED}

ALLOWED_TRANSITIONS: dict[SessionStage, frozenset[SessionStage]] = {
    SessionStage.INITIALIZING: frozenset({SessionStage.FAST_PHASE, *_EXITS}),
    SessionStage.FAST_PHASE: frozenset({SessionStage.FAST_COMPLETE, *_EXITS}),
    SessionStage.FAST_COMPLETE: frozenset({SessionStage.RESEARCH_PHASE, SessionStage.COMPLETE, *_EXITS}),
    SessionStage.RESEARCH_PHASE: frozenset({SessionStage.ENHANCING, SessionStage.COMPLETE, *_EXITS}),
    SessionStage.ENHANCING: frozenset({SessionStage.ENHANCED, *_EXITS}),
    SessionStage.ENHANCED: frozenset({SessionStage.COMPLETE, *_EXITS}),
    SessionStage.COMPLETE: frozenset(),
    SessionStage.ERROR: frozenset(),
    SessionStage.CANCELLED: frozenset(),
}


def generate_analysis_id() -> str:
    return f"analysis_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class AnalysisSession:
    """State of one progressive analysis."""

    id: str
    document: str
    stage: SessionStage = SessionStage.INITIALIZING
    fast_result: Optional[AnalysisResult] = None
    research_results: dict[str, WorkerOutcome] = field(default_factory=dict)
    research_tier: Optional[TierResult] = None
    fused_result: Optional[AnalysisResult] = None
    final_result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    research_error: Optional[BaseException] = None
    created_at: float = field(default_factory=time.monotonic)
    callbacks: dict[str, Callable[..., Any]] = field(default_factory=dict)

    research_task: Optional[asyncio.Task] = field(default=None, repr=False)
    continuation: Optional[asyncio.Task] = field(default=None, repr=False)
    cleanup_handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.created_at

    @property
    def is_terminal(self) -> bool:
        return self.stage.is_terminal

    def advance(self, stage: SessionStage) -> SessionStage:
        """Move to ``stage``; returns the previous stage.

        Raises:
            InvalidStageTransition: ``stage`` is not reachable from the current one
        """
        if stage not in ALLOWED_TRANSITIONS[self.stage]:
            raise InvalidStageTransition(self.id, self.stage.value, stage.value)
        previous, self.stage = self.stage, stage
        return previous


class SessionStore:
    """Active sessions keyed by analysis id, owned by one session manager."""

    def __init__(self) -> None:
        self._sessions: dict[str, AnalysisSession] = {}

    def add(self, session: AnalysisSession) -> None:
        if session.id in self._sessions:
            raise ValueError(f"Analysis {session.id} is already active")
        self._sessions[session.id] = session

    def get(self, analysis_id: str) -> Optional[AnalysisSession]:
        return self._sessions.get(analysis_id)

    def holds(self, session: AnalysisSession) -> bool:
        """Whether this exact session object is still registered."""
        return self._sessions.get(session.id) is session

    def evict(self, analysis_id: str) -> Optional[AnalysisSession]:
        return self._sessions.pop(analysis_id, None)

    def active_ids(self) -> list[str]:
        return list(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()

    def __contains__(self, analysis_id: object) -> bool:
        return analysis_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[AnalysisSession]:
        return iter(list(self._sessions.values()))
