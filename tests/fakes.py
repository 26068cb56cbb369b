"""In-process fake workers with controllable latency and failure."""

import asyncio
from typing import Any

from critique.agents.base import AnalysisRequest, CallableWorker
from critique.core.models.worker import Tier


def make_worker(
    worker_id: str,
    tier: Tier = Tier.FAST,
    delay: float = 0.0,
    insights: list[dict[str, Any]] | None = None,
    confidence: float | None = 0.7,
    error: str | None = None,
    calls: list[AnalysisRequest] | None = None,
    progress: list[dict[str, Any]] | None = None,
) -> CallableWorker:
    """Build a worker that sleeps ``delay`` seconds, then fails or reports."""

    async def analyze(document: str, request: AnalysisRequest) -> dict[str, Any]:
        if calls is not None:
            calls.append(request)
        for update in progress or []:
            request.report_progress(**update)
        await asyncio.sleep(delay)
        if error is not None:
            raise RuntimeError(error)
        return {
            "insights": insights if insights is not None else [
                {"title": f"{worker_id} finding", "type": worker_id, "priority": "medium"}
            ],
            "confidence": confidence,
        }

    return CallableWorker(worker_id, analyze, tier=tier)
