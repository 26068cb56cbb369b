"""
Worker registry and tier selection.

Selection is by tier affinity in registration order, capped per tier.
"""

from __future__ import annotations

from typing import Iterator

from critique.agents.base import Worker
from critique.core.errors import NoWorkersAvailable, WorkerRegistrationError
from critique.core.models.worker import Tier
from critique.utils.logging import get_logger

logger = get_logger(__name__)

# Budgets that never pay for the research tier
FAST_ONLY_BUDGETS = frozenset({"minimal"})


class WorkerRegistry:
    """Ordered collection of the workers available to an engine."""

    def __init__(self, workers: list[Worker] | None = None) -> None:
        self._workers: dict[str, Worker] = {}
        for worker in workers or []:
            self.register(worker)

    def register(self, worker: Worker) -> None:
        """Register a worker under its ``worker_id``.

        Raises:
            WorkerRegistrationError: duplicate id or an object that is not a Worker
        """
        if not isinstance(worker, Worker):
            raise WorkerRegistrationError(f"{worker!r} does not implement Worker")
        if worker.worker_id in self._workers:
            raise WorkerRegistrationError(f"Worker '{worker.worker_id}' is already registered")
        try:
            worker.tier = Tier(worker.tier)
        except ValueError:
            raise WorkerRegistrationError(
                f"Worker '{worker.worker_id}' declares unknown tier {worker.tier!r}"
            ) from None
        self._workers[worker.worker_id] = worker
        logger.info(f"Registered worker: {worker.worker_id} ({worker.tier.value})")

    def unregister(self, worker_id: str) -> bool:
        removed = self._workers.pop(worker_id, None)
        if removed is not None:
            logger.info(f"Unregistered worker: {worker_id}")
        return removed is not None

    def get(self, worker_id: str) -> Worker | None:
        return self._workers.get(worker_id)

    def by_tier(self, tier: Tier) -> list[Worker]:
        tier = Tier(tier)
        return [w for w in self._workers.values() if w.tier == tier]

    def __contains__(self, worker_id: object) -> bool:
        return worker_id in self._workers

    def __len__(self) -> int:
        return len(self._workers)

    def __iter__(self) -> Iterator[Worker]:
        return iter(list(self._workers.values()))

    # ------------------------------------------------------------------
    # Pool selection
    # ------------------------------------------------------------------

    def select(self, tier: Tier, cap: int) -> list[Worker]:
        """Up to ``cap`` workers of ``tier`` in registration order."""
        if cap <= 0:
            return []
        return self.by_tier(tier)[:cap]

    def select_fast(self, cap: int) -> list[Worker]:
        """Fast-tier pool; an empty pool is fatal.

        Raises:
            NoWorkersAvailable: no fast worker could be selected
        """
        selected = self.select(Tier.FAST, cap)
        if not selected:
            raise NoWorkersAvailable(Tier.FAST.value)
        return selected

    def select_research(self, cap: int, budget: str = "standard") -> list[Worker]:
        """Research-tier pool; may be empty (fast-only output)."""
        if budget in FAST_ONLY_BUDGETS:
            return []
        return self.select(Tier.RESEARCH, cap)
