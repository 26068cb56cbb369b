"""Canonical analysis event topics and payload builders."""

from __future__ import annotations

import time
from typing import Any, Dict

from .event_bus import EventPayload

# Analysis lifecycle topics
TOPIC_ANALYSIS_STAGE = "analysis.stage"
TOPIC_ANALYSIS_PROGRESS = "analysis.progress"
TOPIC_ANALYSIS_FAST_COMPLETE = "analysis.fast_complete"
TOPIC_ANALYSIS_ENHANCED = "analysis.enhanced"
TOPIC_ANALYSIS_COMPLETE = "analysis.complete"

# Suggestion lifecycle topics
TOPIC_SUGGESTION_RETRACTED = "suggestion.retracted"
TOPIC_SUGGESTION_RESOLVED = "suggestion.resolved"


def create_stage_event(analysis_id: str, previous: str, stage: str) -> EventPayload:
    """Create a stage transition event."""
    return {
        "analysis_id": analysis_id,
        "previous": previous,
        "stage": stage,
        "timestamp": time.time(),
    }


def create_progress_event(
    analysis_id: str,
    worker_id: str,
    stage: str,
    kind: str,
    progress: Dict[str, Any],
) -> EventPayload:
    """Tag a worker's partial progress with its origin.

    Worker-supplied keys are kept, but the origin tags always win.
    """
    return {
        **progress,
        "analysis_id": analysis_id,
        "worker_id": worker_id,
        "stage": stage,
        "type": kind,
        "timestamp": time.time(),
    }


def create_suggestion_event(suggestion_id: str, status: str, reason: str | None = None) -> EventPayload:
    """Create a suggestion status change event."""
    return {
        "suggestion_id": suggestion_id,
        "status": status,
        "reason": reason,
        "timestamp": time.time(),
    }
