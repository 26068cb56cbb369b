"""Suggestion board tests: anchors tracked across edits, evaluator verdicts applied."""

import unittest

from critique.core import events
from critique.core.errors import InvalidSuggestionTransition
from critique.core.event_bus import EventBus
from critique.core.models.insight import Insight
from critique.core.models.result import AnalysisResult
from critique.core.models.suggestion import SuggestionStatus
from critique.domain.suggestions.board import SuggestionBoard

DOCUMENT = "This sentence is very very long and wordy. The second sentence is fine."
SNIPPET = "This sentence is very very long and wordy"


class FakeEvaluator:
    def __init__(self, verdict=None, error: Exception | None = None):
        self.verdict = verdict or {"status": "resolved", "confidence": 0.9, "reasoning": "Tightened"}
        self.error = error
        self.calls = []

    async def evaluate(self, suggestion, original_text, current_text, changes):
        self.calls.append((suggestion, original_text, current_text, list(changes)))
        if self.error is not None:
            raise self.error
        return self.verdict


def wordy_result() -> AnalysisResult:
    return AnalysisResult(insights=[Insight(title="Wordy sentence", type="style", textSnippets=[SNIPPET])])


class SuggestionBoardTest(unittest.IsolatedAsyncioTestCase):
    def board_with(self, evaluator=None, event_bus=None) -> SuggestionBoard:
        board = SuggestionBoard(evaluator=evaluator, event_bus=event_bus)
        [self.suggestion] = board.add_result(wordy_result(), DOCUMENT)
        return board

    def test_result_insights_become_anchored_suggestions(self) -> None:
        board = self.board_with()

        anchor = self.suggestion.anchors[0]
        self.assertEqual((anchor.start, anchor.end), (0, len(SNIPPET)))
        self.assertEqual(board.active(), [self.suggestion])

    async def test_rewritten_anchor_retracts_suggestion(self) -> None:
        board = self.board_with()

        changed = await board.document_changed(DOCUMENT.replace("very very long and wordy", "short"))

        [retracted] = changed
        self.assertEqual(retracted.status, SuggestionStatus.RETRACTED)
        self.assertEqual(retracted.retracted_reason, "Text was significantly modified in 1 location(s)")
        self.assertEqual(board.active(), [])

    async def test_small_edit_inside_anchor_is_sent_to_evaluator(self) -> None:
        evaluator = FakeEvaluator()
        board = self.board_with(evaluator)
        edited = DOCUMENT.replace("very very", "very", 1)

        await board.document_changed(edited)

        [(seen, original, current, changes)] = evaluator.calls
        self.assertEqual(seen.anchors[0].text, "This sentence is very long and wordy")
        self.assertEqual((original, current), (DOCUMENT, edited))
        self.assertEqual([c.describe() for c in changes], ['Deleted "very " from position 22-27'])

        resolved = board.get(self.suggestion.id)
        self.assertEqual(resolved.status, SuggestionStatus.RESOLVED)
        self.assertEqual(resolved.resolved_by, "evaluator")
        self.assertEqual(resolved.evaluation["reasoning"], "Tightened")

    async def test_evaluator_retraction_keeps_its_reasoning(self) -> None:
        evaluator = FakeEvaluator({"status": "retracted", "confidence": 0.8, "reasoning": "No longer applies"})
        board = self.board_with(evaluator)

        await board.document_changed(DOCUMENT.replace("very very", "very", 1))

        self.assertEqual(board.get(self.suggestion.id).retracted_reason, "No longer applies")

    async def test_active_verdict_records_evaluation(self) -> None:
        evaluator = FakeEvaluator({"status": "active", "confidence": 1.7, "reasoning": "Still wordy"})
        board = self.board_with(evaluator)

        await board.document_changed(DOCUMENT.replace("very very", "very", 1))

        current = board.get(self.suggestion.id)
        self.assertTrue(current.is_active)
        self.assertEqual(current.evaluation["confidence"], 1.0)

    async def test_evaluator_failure_keeps_suggestion_active(self) -> None:
        board = self.board_with(FakeEvaluator(error=RuntimeError("model offline")))

        await board.document_changed(DOCUMENT.replace("very very", "very", 1))

        current = board.get(self.suggestion.id)
        self.assertTrue(current.is_active)
        self.assertEqual(current.evaluation["status"], "active")
        self.assertEqual(current.evaluation["confidence"], 0.2)

    async def test_malformed_verdict_is_treated_as_unavailable(self) -> None:
        board = self.board_with(FakeEvaluator({"status": "maybe"}))

        await board.document_changed(DOCUMENT.replace("very very", "very", 1))

        self.assertTrue(board.get(self.suggestion.id).is_active)

    async def test_distant_edit_shifts_nothing_and_skips_evaluation(self) -> None:
        evaluator = FakeEvaluator()
        board = self.board_with(evaluator)

        changed = await board.document_changed(DOCUMENT + " A closing remark that adds nothing.")

        self.assertEqual(evaluator.calls, [])
        self.assertEqual(changed, [])
        self.assertTrue(board.get(self.suggestion.id).is_active)

    async def test_edit_before_anchor_shifts_it(self) -> None:
        board = self.board_with()
        edited = "Intro. " + DOCUMENT

        await board.document_changed(edited)

        anchor = board.get(self.suggestion.id).anchors[0]
        self.assertEqual((anchor.start, anchor.end), (7, 7 + len(SNIPPET)))
        self.assertEqual(anchor.text, SNIPPET)

    async def test_dismissed_suggestion_is_left_alone(self) -> None:
        evaluator = FakeEvaluator()
        board = self.board_with(evaluator)
        board.dismiss(self.suggestion.id)

        changed = await board.document_changed(DOCUMENT.replace("very very long and wordy", "short"))

        self.assertEqual(changed, [])
        self.assertEqual(evaluator.calls, [])
        self.assertEqual(board.get(self.suggestion.id).status, SuggestionStatus.DISMISSED)

    def test_manual_resolution(self) -> None:
        board = self.board_with()

        resolved = board.resolve(self.suggestion.id)

        self.assertEqual(resolved.resolved_by, "user")
        with self.assertRaises(InvalidSuggestionTransition):
            board.dismiss(self.suggestion.id)
        with self.assertRaises(KeyError):
            board.resolve("suggestion_missing")

    async def test_retraction_is_published(self) -> None:
        bus = EventBus()
        received = []

        async def on_retracted(payload):
            received.append(payload)

        await bus.subscribe(events.TOPIC_SUGGESTION_RETRACTED, on_retracted)
        board = self.board_with(event_bus=bus)

        await board.document_changed(DOCUMENT.replace("very very long and wordy", "short"))
        await bus.drain()

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0]["suggestion_id"], self.suggestion.id)
        self.assertEqual(received[0]["status"], "retracted")


FOX = "The quick brown fox jumps over the lazy dog."


def snippet_result(snippet: str, phase: str = "fast") -> AnalysisResult:
    return AnalysisResult(
        insights=[Insight(title=f"About {snippet}", textSnippets=[snippet])],
        analysis_phase=phase,
    )


class LateResultTest(unittest.IsolatedAsyncioTestCase):
    def assertAnchoredTo(self, board: SuggestionBoard, document: str, expected: dict[str, str]) -> None:
        for suggestion_id, snippet in expected.items():
            suggestion = board.get(suggestion_id)
            self.assertTrue(suggestion.is_active)
            for anchor in suggestion.anchors:
                self.assertEqual(document[anchor.start:anchor.end], snippet)

    async def test_result_for_earlier_snapshot_follows_later_edits(self) -> None:
        board = SuggestionBoard()
        [fast] = board.add_result(snippet_result("quick brown fox"), FOX)
        edited = "Yesterday, " + FOX
        await board.document_changed(edited)

        [late] = board.add_result(snippet_result("lazy dog", phase="enhanced"), FOX)

        self.assertEqual(board.document, edited)
        self.assertAnchoredTo(board, edited, {fast.id: "quick brown fox", late.id: "lazy dog"})

        final = edited + " The end."
        await board.document_changed(final)

        self.assertAnchoredTo(board, final, {fast.id: "quick brown fox", late.id: "lazy dog"})

    async def test_result_for_newer_snapshot_is_mapped_to_tracked_text(self) -> None:
        board = SuggestionBoard()
        [first] = board.add_result(snippet_result("quick brown fox"), FOX)
        edited = "Yesterday, " + FOX

        [second] = board.add_result(snippet_result("lazy dog"), edited)
        self.assertAnchoredTo(board, FOX, {second.id: "lazy dog"})

        await board.document_changed(edited)

        self.assertAnchoredTo(board, edited, {first.id: "quick brown fox", second.id: "lazy dog"})

    async def test_late_insight_on_deleted_text_is_skipped(self) -> None:
        board = SuggestionBoard()
        board.add_result(snippet_result("quick brown fox"), FOX)
        await board.document_changed("The quick brown fox jumps.")

        created = board.add_result(snippet_result("lazy dog", phase="enhanced"), FOX)

        self.assertEqual(created, [])
        self.assertEqual(len(board.active()), 1)


if __name__ == "__main__":
    unittest.main()
