"""
Error taxonomy for the critique engine.

Worker-level failures never escape a tier; they become failed outcomes.
Only tier-level fatal errors reach the caller of an analysis.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from critique.domain.orchestration.executor import WorkerOutcome


class CritiqueError(Exception):
    """Base class for engine errors."""


# ============================================================================
# Tier errors
# ============================================================================


class NoWorkersAvailable(CritiqueError):
    """No worker is registered for a tier that must produce results."""

    def __init__(self, tier: str):
        self.tier = tier
        super().__init__(f"No {tier} workers available")


class AllWorkersFailed(CritiqueError):
    """Every worker of a tier failed (or none settled)."""

    def __init__(self, tier: str, failures: list["WorkerOutcome"] | None = None):
        self.tier = tier
        self.failures = list(failures or [])
        detail = "; ".join(f"{f.worker_id}: {f.error}" for f in self.failures)
        message = f"No {tier} workers completed successfully"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PartialTierFailure(CritiqueError):
    """Some workers of a tier failed; the survivors are still used.

    Recorded on the tier result and logged, never raised.
    """

    def __init__(self, tier: str, failures: list["WorkerOutcome"], succeeded: int):
        self.tier = tier
        self.failures = list(failures)
        self.succeeded = succeeded
        super().__init__(
            f"{len(self.failures)} of {len(self.failures) + succeeded} {tier} workers failed"
        )


class TierTimeout(CritiqueError):
    """A tier did not settle within its deadline."""

    def __init__(self, tier: str, timeout: float, pending: list[str]):
        self.tier = tier
        self.timeout = timeout
        self.pending = list(pending)
        super().__init__(
            f"{tier} tier timed out after {timeout:.3f}s with {len(self.pending)} worker(s) pending"
        )


class ResearchPhaseFailure(CritiqueError):
    """The research tier failed; the session finishes on fast results alone."""

    def __init__(self, analysis_id: str, cause: BaseException):
        self.analysis_id = analysis_id
        self.cause = cause
        super().__init__(f"Research phase failed for {analysis_id}: {cause}")


# ============================================================================
# Registry and lifecycle errors
# ============================================================================


class WorkerRegistrationError(CritiqueError):
    """A worker could not be registered."""


class InvalidStageTransition(CritiqueError):
    """A session was asked to move to a stage not reachable from its current one."""

    def __init__(self, analysis_id: str, current: Any, target: Any):
        self.analysis_id = analysis_id
        self.current = current
        self.target = target
        super().__init__(f"Analysis {analysis_id}: cannot move from {current} to {target}")


class InvalidSuggestionTransition(CritiqueError):
    """A suggestion in a terminal status was asked to change status."""

    def __init__(self, suggestion_id: str, current: Any, target: Any):
        self.suggestion_id = suggestion_id
        self.current = current
        self.target = target
        super().__init__(f"Suggestion {suggestion_id} is {current}; cannot become {target}")
