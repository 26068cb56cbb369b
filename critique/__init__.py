"""Progressive analysis orchestration and suggestion lifecycle engine."""

from critique.agents import AnalysisRequest, CallableWorker, Worker, WorkerRegistry
from critique.core.event_bus import EventBus
from critique.domain.anchoring import TextChangeDetector, find_text_snippet, find_text_snippets
from critique.domain.orchestration import AnalysisOptions, AnalysisSessionManager, combine_results
from critique.domain.suggestions import SuggestionBoard

__version__ = "0.1.0"

__all__ = [
    "AnalysisOptions",
    "AnalysisRequest",
    "AnalysisSessionManager",
    "CallableWorker",
    "EventBus",
    "SuggestionBoard",
    "TextChangeDetector",
    "Worker",
    "WorkerRegistry",
    "combine_results",
    "find_text_snippet",
    "find_text_snippets",
]
