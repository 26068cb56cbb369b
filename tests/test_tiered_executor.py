import time
import unittest

from critique.core.errors import AllWorkersFailed, NoWorkersAvailable
from critique.core.models.worker import Complexity, Tier
from critique.domain.orchestration.executor import TierConfig, TieredExecutor

from fakes import make_worker


class TieredExecutorTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.executor = TieredExecutor()

    async def test_one_failure_does_not_abort_siblings(self) -> None:
        workers = [make_worker("a"), make_worker("b", error="boom"), make_worker("c", delay=0.01)]

        result = await self.executor.execute(workers, "doc", TierConfig.fast(1.0))

        self.assertEqual([o.worker_id for o in result.successes], ["a", "c"])
        self.assertEqual([(o.worker_id, o.error) for o in result.failures], [("b", "boom")])
        self.assertIsNotNone(result.partial_failure)
        self.assertEqual(result.worker_count, 3)

    async def test_all_failures_raise(self) -> None:
        workers = [make_worker("a", error="down"), make_worker("b", error="rate limited")]

        with self.assertRaises(AllWorkersFailed) as ctx:
            await self.executor.execute(workers, "doc", TierConfig.fast(1.0))

        self.assertEqual([f.worker_id for f in ctx.exception.failures], ["a", "b"])
        self.assertIn("rate limited", str(ctx.exception))

    async def test_invalid_result_counts_as_failure(self) -> None:
        workers = [make_worker("a"), make_worker("b", insights="not a list")]

        result = await self.executor.execute(workers, "doc", TierConfig.fast(1.0))

        self.assertEqual(len(result.failures), 1)
        self.assertIn("Invalid worker result", result.failures[0].error)

    async def test_no_fast_workers(self) -> None:
        with self.assertRaises(NoWorkersAvailable):
            await self.executor.execute([], "doc", TierConfig.fast(1.0))

    async def test_fast_tier_collects_stragglers_after_timeout(self) -> None:
        workers = [make_worker("quick"), make_worker("slow", delay=0.1)]

        result = await self.executor.execute(workers, "doc", TierConfig.fast(0.02))

        self.assertTrue(result.timed_out)
        self.assertEqual([o.worker_id for o in result.successes], ["quick", "slow"])

    async def test_research_timeout_returns_empty_result(self) -> None:
        workers = [
            make_worker("deep", tier=Tier.RESEARCH, delay=1.0),
            make_worker("deeper", tier=Tier.RESEARCH, delay=1.0),
        ]

        started = time.perf_counter()
        result = await self.executor.execute(workers, "doc", TierConfig.research(0.02))

        self.assertLess(time.perf_counter() - started, 0.5)
        self.assertTrue(result.timed_out)
        self.assertTrue(result.is_empty)
        self.assertEqual(len(result.failures), 2)

    async def test_research_timeout_keeps_settled_outcomes(self) -> None:
        workers = [
            make_worker("deep", tier=Tier.RESEARCH),
            make_worker("stuck", tier=Tier.RESEARCH, delay=1.0),
        ]

        result = await self.executor.execute(workers, "doc", TierConfig.research(0.05))

        self.assertEqual([o.worker_id for o in result.successes], ["deep"])
        self.assertIn("Timed out", result.failures[0].error)

    async def test_outcomes_follow_worker_order(self) -> None:
        workers = [make_worker("late", delay=0.03), make_worker("early")]

        result = await self.executor.execute(workers, "doc", TierConfig.fast(1.0))

        self.assertEqual([o.worker_id for o in result.successes], ["late", "early"])
        self.assertTrue(all(o.processing_time == "fast" for o in result.successes))

    async def test_progress_is_tagged_with_origin(self) -> None:
        seen = []
        worker = make_worker("style", progress=[{"partial": "x", "worker_id": "spoofed"}])

        await self.executor.execute(
            [worker],
            "doc",
            TierConfig.fast(1.0, on_progress=seen.append, analysis_id="analysis_1"),
        )

        self.assertEqual(len(seen), 1)
        self.assertEqual(seen[0]["partial"], "x")
        self.assertEqual(seen[0]["worker_id"], "style")
        self.assertEqual(seen[0]["analysis_id"], "analysis_1")
        self.assertEqual(seen[0]["stage"], "fast_streaming")
        self.assertEqual(seen[0]["type"], "fast_insight")

    async def test_failing_progress_sink_is_ignored(self) -> None:
        def broken(payload):
            raise ValueError("sink down")

        worker = make_worker("style", progress=[{"partial": "x"}])

        result = await self.executor.execute([worker], "doc", TierConfig.fast(1.0, on_progress=broken))

        self.assertEqual(len(result.successes), 1)

    async def test_request_reflects_tier(self) -> None:
        fast_calls, research_calls = [], []

        await self.executor.execute([make_worker("f", calls=fast_calls)], "doc", TierConfig.fast(1.0))
        await self.executor.execute(
            [make_worker("r", tier=Tier.RESEARCH, calls=research_calls)],
            "doc",
            TierConfig.research(1.0, budget="premium"),
        )

        self.assertEqual(fast_calls[0].complexity, Complexity.LOW)
        self.assertFalse(fast_calls[0].streaming)
        self.assertEqual(research_calls[0].complexity, Complexity.HIGH)
        self.assertEqual(research_calls[0].budget, "premium")

    async def test_worker_usage_is_recorded(self) -> None:
        workers = [make_worker("a", confidence=0.8), make_worker("b", error="boom")]

        await self.executor.execute(workers, "doc", TierConfig.fast(1.0))

        usage = self.executor.stats.workers
        self.assertEqual(usage["a"].successes, 1)
        self.assertAlmostEqual(usage["a"].average_confidence, 0.8)
        self.assertEqual(usage["b"].success_rate, 0.0)


if __name__ == "__main__":
    unittest.main()
