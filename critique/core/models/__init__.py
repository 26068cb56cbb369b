"""
Core Models - anchors, insights, results, edits and suggestions.
"""

from critique.core.models.anchor import TextAnchor
from critique.core.models.document import ChangeAnalysis, ChangeRecord, DocumentEdit, EditType
from critique.core.models.insight import Insight, Priority, priority_rank
from critique.core.models.result import AnalysisResult, Conflict, Improvements, WorkerSource
from critique.core.models.suggestion import Suggestion, SuggestionStatus
from critique.core.models.worker import Complexity, Tier, Urgency, WorkerReport

__all__ = [
    "AnalysisResult",
    "ChangeAnalysis",
    "ChangeRecord",
    "Complexity",
    "Conflict",
    "DocumentEdit",
    "EditType",
    "Improvements",
    "Insight",
    "Priority",
    "Suggestion",
    "SuggestionStatus",
    "TextAnchor",
    "Tier",
    "Urgency",
    "WorkerReport",
    "WorkerSource",
    "priority_rank",
]
