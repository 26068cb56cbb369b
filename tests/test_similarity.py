import unittest

from critique.domain.anchoring.similarity import (
    SimilarityMatcher,
    find_text_snippet,
    find_text_snippets,
    normalize_text,
    similarity_score,
)


class NormalizationTest(unittest.TestCase):
    def test_normalize_folds_case_whitespace_and_quotes(self) -> None:
        self.assertEqual(
            normalize_text("  “Hello”\n\t ‘World’  "),
            "\"hello\" 'world'",
        )

    def test_similarity_score_is_edit_distance_based(self) -> None:
        self.assertEqual(similarity_score("Fox", "fox"), 1.0)
        self.assertAlmostEqual(similarity_score("abcd", "abce"), 0.75)


class FindTextSnippetTest(unittest.TestCase):
    def test_transposed_letters_are_matched(self) -> None:
        matches = find_text_snippet("The quick brown fox", "quikc brown fox", threshold=0.8)

        self.assertTrue(matches)
        best = matches[0]
        self.assertGreaterEqual(best.similarity, 0.8)
        self.assertEqual(best.text, "quick brown fox")
        self.assertEqual((best.start, best.end), (4, 19))

    def test_zero_threshold_returns_nothing(self) -> None:
        self.assertEqual(find_text_snippet("The quick brown fox", "fox", threshold=0.0), [])

    def test_empty_snippet_returns_nothing(self) -> None:
        self.assertEqual(find_text_snippet("The quick brown fox", ""), [])
        self.assertEqual(find_text_snippet("The quick brown fox", "   "), [])

    def test_threshold_out_of_range_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            find_text_snippet("The quick brown fox", "fox", threshold=1.5)

    def test_exact_matches_are_case_insensitive(self) -> None:
        matches = find_text_snippet("Fox and fox and FOX", "fox")

        self.assertEqual([m.start for m in matches], [0, 8, 16])
        self.assertTrue(all(m.similarity == 1.0 for m in matches))
        self.assertEqual(matches[2].text, "FOX")

    def test_long_snippet_with_typos_found_at_document_start(self) -> None:
        content = (
            "The committee approved the new budget proposal yesterday afternoon "
            "after a long debate."
        )
        matches = find_text_snippet(content, "The comittee aproved the new budget proposal")

        self.assertTrue(matches)
        self.assertEqual(matches[0].start, 0)
        self.assertGreaterEqual(matches[0].similarity, 0.85)
        self.assertIn("committee", matches[0].text)

    def test_matches_never_overlap(self) -> None:
        content = "alpha beta alpha beta alpha beta"
        matches = find_text_snippet(content, "alpha beta")

        ordered = sorted(matches, key=lambda m: m.start)
        for first, second in zip(ordered, ordered[1:]):
            self.assertLessEqual(first.end, second.start)

    def test_matcher_uses_instance_threshold_by_default(self) -> None:
        strict = SimilarityMatcher(threshold=1.0)
        self.assertEqual(strict.find("The quick brown fox", "quikc brown fox"), [])


class FindTextSnippetsTest(unittest.TestCase):
    def test_results_are_in_document_order_with_snippet_index(self) -> None:
        matches = find_text_snippets("alpha beta gamma delta", ["gamma", "alpha"])

        self.assertEqual([m.start for m in matches], [0, 11])
        self.assertEqual([m.snippet_index for m in matches], [1, 0])
        self.assertEqual([m.original_snippet for m in matches], ["alpha", "gamma"])

    def test_overlapping_candidates_are_accepted_greedily(self) -> None:
        matches = find_text_snippets("the quick brown fox", ["brown fox", "quick brown"])

        self.assertEqual(len(matches), 1)
        self.assertEqual(matches[0].text, "quick brown")
        self.assertEqual(matches[0].snippet_index, 1)


if __name__ == "__main__":
    unittest.main()
