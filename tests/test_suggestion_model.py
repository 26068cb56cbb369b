import unittest

from pydantic import ValidationError

from critique.core.errors import InvalidSuggestionTransition
from critique.core.models.anchor import TextAnchor
from critique.core.models.insight import Insight
from critique.core.models.suggestion import Suggestion, SuggestionStatus


def active_suggestion() -> Suggestion:
    insight = Insight(title="Wordy", type="style", anchors=[TextAnchor(start=0, end=4, text="This")])
    return Suggestion.from_insight(insight)


class SuggestionModelTest(unittest.TestCase):
    def test_from_insight_takes_its_anchors(self) -> None:
        suggestion = active_suggestion()

        self.assertTrue(suggestion.is_active)
        self.assertEqual(suggestion.title, "Wordy")
        self.assertEqual(suggestion.type, "style")
        self.assertEqual(suggestion.anchors[0].text, "This")

    def test_active_suggestion_needs_an_anchor(self) -> None:
        with self.assertRaises(ValidationError):
            Suggestion(insights=[Insight(title="Wordy")])

    def test_suggestions_are_immutable(self) -> None:
        suggestion = active_suggestion()

        with self.assertRaises(ValidationError):
            suggestion.status = SuggestionStatus.RESOLVED

    def test_transitions_return_new_instances(self) -> None:
        suggestion = active_suggestion()

        resolved = suggestion.resolve(by="evaluator")
        retracted = suggestion.retract("gone")
        dismissed = suggestion.dismiss()

        self.assertTrue(suggestion.is_active)
        self.assertEqual(resolved.status, SuggestionStatus.RESOLVED)
        self.assertEqual(resolved.resolved_by, "evaluator")
        self.assertIsNotNone(resolved.resolved_at)
        self.assertEqual(retracted.retracted_reason, "gone")
        self.assertIsNotNone(dismissed.dismissed_at)
        self.assertEqual(resolved.id, suggestion.id)

    def test_terminal_status_is_final(self) -> None:
        dismissed = active_suggestion().dismiss()

        with self.assertRaises(InvalidSuggestionTransition):
            dismissed.resolve()
        with self.assertRaises(InvalidSuggestionTransition):
            dismissed.retract("late edit")

    def test_repeating_a_transition_is_a_no_op(self) -> None:
        resolved = active_suggestion().resolve()

        self.assertIs(resolved.resolve(), resolved)

    def test_active_suggestion_cannot_lose_every_anchor(self) -> None:
        with self.assertRaises(ValueError):
            active_suggestion().with_anchors([])

    def test_anchor_validity_against_document(self) -> None:
        suggestion = active_suggestion()

        self.assertTrue(suggestion.anchors_valid_for("This text"))
        self.assertFalse(suggestion.anchors_valid_for("Th"))

    def test_json_round_trip(self) -> None:
        suggestion = active_suggestion().retract("rewritten")

        restored = Suggestion.model_validate(suggestion.model_dump(mode="json"))

        self.assertEqual(restored, suggestion)


if __name__ == "__main__":
    unittest.main()
