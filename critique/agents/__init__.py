"""
Critic workers - the capability interface and the registry that selects tiers.
"""

from critique.agents.base import AnalysisRequest, CallableWorker, Worker
from critique.agents.registry import WorkerRegistry

__all__ = [
    "AnalysisRequest",
    "CallableWorker",
    "Worker",
    "WorkerRegistry",
]
