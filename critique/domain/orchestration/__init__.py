"""
Orchestration - tiered execution, result fusion and analysis sessions.
"""

from critique.domain.orchestration.executor import TierConfig, TieredExecutor, TierResult, WorkerOutcome
from critique.domain.orchestration.fusion import (
    aggregate_results,
    calculate_combined_confidence,
    calculate_improvements,
    combine_results,
    detect_conflicts,
)
from critique.domain.orchestration.metrics import OrchestrationStats
from critique.domain.orchestration.session import AnalysisSession, SessionStage, SessionStore
from critique.domain.orchestration.session_manager import AnalysisOptions, AnalysisSessionManager

__all__ = [
    "AnalysisOptions",
    "AnalysisSession",
    "AnalysisSessionManager",
    "OrchestrationStats",
    "SessionStage",
    "SessionStore",
    "TierConfig",
    "TierResult",
    "TieredExecutor",
    "WorkerOutcome",
    "aggregate_results",
    "calculate_combined_confidence",
    "calculate_improvements",
    "combine_results",
    "detect_conflicts",
]
