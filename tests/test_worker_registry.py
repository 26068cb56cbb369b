import unittest

from critique.agents.base import Worker
from critique.agents.registry import WorkerRegistry
from critique.core.errors import NoWorkersAvailable, WorkerRegistrationError
from critique.core.models.worker import Tier

from fakes import make_worker


class WorkerRegistryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = WorkerRegistry(
            [
                make_worker("style"),
                make_worker("facts", tier=Tier.RESEARCH),
                make_worker("grammar"),
                make_worker("logic"),
                make_worker("sources", tier=Tier.RESEARCH),
                make_worker("evidence", tier=Tier.RESEARCH),
                make_worker("clarity"),
            ]
        )

    def test_selection_respects_cap_and_registration_order(self) -> None:
        fast = self.registry.select_fast(3)
        research = self.registry.select_research(2)

        self.assertEqual([w.worker_id for w in fast], ["style", "grammar", "logic"])
        self.assertEqual([w.worker_id for w in research], ["facts", "sources"])

    def test_duplicate_id_is_rejected(self) -> None:
        with self.assertRaises(WorkerRegistrationError):
            self.registry.register(make_worker("style"))

    def test_non_worker_is_rejected(self) -> None:
        with self.assertRaises(WorkerRegistrationError):
            self.registry.register(object())

    def test_empty_fast_tier_is_fatal(self) -> None:
        registry = WorkerRegistry([make_worker("facts", tier=Tier.RESEARCH)])

        with self.assertRaises(NoWorkersAvailable):
            registry.select_fast(3)

    def test_empty_research_tier_is_allowed(self) -> None:
        registry = WorkerRegistry([make_worker("style")])

        self.assertEqual(registry.select_research(2), [])

    def test_minimal_budget_skips_research(self) -> None:
        self.assertEqual(self.registry.select_research(2, budget="minimal"), [])

    def test_string_tier_is_coerced(self) -> None:
        class Summarizer(Worker):
            tier = "research"

            async def analyze(self, document, request):
                return {"insights": []}

        declared = Summarizer("summary")
        assigned = make_worker("outline")
        assigned.tier = "research"
        registry = WorkerRegistry([make_worker("style"), declared, assigned])

        self.assertEqual([w.worker_id for w in registry.select_research(3)], ["summary", "outline"])
        self.assertIs(assigned.tier, Tier.RESEARCH)

    def test_unknown_tier_is_rejected(self) -> None:
        worker = make_worker("odd")
        worker.tier = "glacial"

        with self.assertRaises(WorkerRegistrationError):
            self.registry.register(worker)

    def test_unregister(self) -> None:
        self.assertTrue(self.registry.unregister("style"))
        self.assertFalse(self.registry.unregister("style"))
        self.assertNotIn("style", self.registry)
        self.assertEqual(len(self.registry), 6)


if __name__ == "__main__":
    unittest.main()
