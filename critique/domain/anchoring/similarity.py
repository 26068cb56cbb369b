"""
Fuzzy snippet search for re-locating anchor text inside a changed document.

Strategy:
1. Case-insensitive exact search for the snippet.
2. When nothing matched exactly, or the snippet is longer than a few
   words, slide a window over the document, keep the windows that could
   contain a close match, and search each for its best-scoring span.
3. Overlapping candidates are pruned, highest similarity first.

Similarity is edit-distance based on normalized text:
``(max(len1, len2) - distance) / max(len1, len2)``.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from rapidfuzz.distance import Levenshtein

from critique.core.models.anchor import TextAnchor
from critique.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 0.8
MIN_WINDOW = 50

# Substring lengths tried inside a promising window, as fractions of the snippet length
LENGTH_VARIATIONS = (1.0, 0.8, 1.2, 0.6, 1.4)

# Snippets with more words than this also get a fuzzy pass after an exact hit
LONG_SNIPPET_WORDS = 3

_WHITESPACE = re.compile(r"\s+")
_SINGLE_QUOTES = re.compile("[‘’‚‛′`]")
_DOUBLE_QUOTES = re.compile("[“”„‟″]")


def normalize_text(text: str) -> str:
    """Case-fold, collapse whitespace and straighten typographic quotes."""
    text = text.casefold()
    text = _WHITESPACE.sub(" ", text)
    text = _SINGLE_QUOTES.sub("'", text)
    text = _DOUBLE_QUOTES.sub('"', text)
    return text.strip()


def similarity_score(first: str, second: str) -> float:
    """Edit-distance similarity (0-1) of two strings after normalization."""
    return Levenshtein.normalized_similarity(normalize_text(first), normalize_text(second))


def _window_score(window_norm: str, snippet_norm: str) -> float:
    """Upper bound on how well any span of the window can match the snippet.

    A window is usually longer than the snippet; those surplus characters
    are unavoidable edits and are not counted against it.
    """
    if not snippet_norm:
        return 0.0
    distance = Levenshtein.distance(window_norm, snippet_norm)
    gap = abs(len(window_norm) - len(snippet_norm))
    return max(0.0, 1.0 - (distance - gap) / len(snippet_norm))


def _overlaps(candidate: TextAnchor, accepted: Iterable[TextAnchor]) -> bool:
    return any(candidate.overlaps(existing) for existing in accepted)


def _prune_overlaps(candidates: list[TextAnchor]) -> list[TextAnchor]:
    """Greedily keep the best non-overlapping candidates."""
    ranked = sorted(candidates, key=lambda m: (-(m.similarity or 0.0), m.start, m.end))
    kept: list[TextAnchor] = []
    for candidate in ranked:
        if not _overlaps(candidate, kept):
            kept.append(candidate)
    return kept


class SimilarityMatcher:
    """Finds approximate occurrences of snippets inside a document."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD, min_window: int = MIN_WINDOW):
        self.threshold = threshold
        self.min_window = min_window

    def find(self, content: str, snippet: str, threshold: float | None = None) -> list[TextAnchor]:
        """Ranked, non-overlapping matches of one snippet (best first).

        Args:
            content: Document to search
            snippet: Text to locate
            threshold: Minimum similarity in [0, 1]; 0 disables matching

        Returns:
            Anchors sorted by descending similarity, then position
        """
        threshold = self.threshold if threshold is None else threshold
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        if threshold == 0.0 or not content or not snippet or not snippet.strip():
            return []

        snippet_norm = normalize_text(snippet)
        candidates = self._exact_matches(content, snippet)

        if not candidates or len(snippet_norm.split(" ")) > LONG_SNIPPET_WORDS:
            candidates.extend(self._fuzzy_matches(content, snippet, snippet_norm, threshold))

        return _prune_overlaps(candidates)

    def find_all(
        self,
        content: str,
        snippets: Sequence[str],
        threshold: float | None = None,
    ) -> list[TextAnchor]:
        """Non-overlapping matches for several snippets, in document order.

        All candidate spans are pooled and accepted greedily by similarity,
        so a span claimed by a better match is never reused.
        """
        pooled: list[TextAnchor] = []
        for index, snippet in enumerate(snippets):
            for match in self.find(content, snippet, threshold):
                pooled.append(
                    match.model_copy(update={"snippet_index": index, "original_snippet": snippet})
                )

        return sorted(_prune_overlaps(pooled), key=lambda m: (m.start, m.end))

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _exact_matches(self, content: str, snippet: str) -> list[TextAnchor]:
        needle = snippet.strip()
        return [
            TextAnchor(
                start=m.start(),
                end=m.end(),
                text=m.group(0),
                similarity=1.0,
                original_snippet=snippet,
            )
            for m in re.finditer(re.escape(needle), content, re.IGNORECASE)
        ]

    def _window_starts(self, content_length: int, window_size: int) -> list[int]:
        if content_length <= window_size:
            return [0]
        step = max(1, window_size // 4)
        last = content_length - window_size
        starts = list(range(0, last + 1, step))
        if starts[-1] != last:
            starts.append(last)
        return starts

    def _fuzzy_matches(
        self,
        content: str,
        snippet: str,
        snippet_norm: str,
        threshold: float,
    ) -> list[TextAnchor]:
        window_size = max(len(snippet), self.min_window)
        matches: list[TextAnchor] = []

        for window_start in self._window_starts(len(content), window_size):
            window = content[window_start:window_start + window_size]
            if _window_score(normalize_text(window), snippet_norm) < threshold:
                continue

            best = self._best_span(window, window_start, snippet, snippet_norm)
            if best is not None and (best.similarity or 0.0) >= threshold:
                matches.append(best)

        logger.debug(f"Fuzzy search for {snippet[:30]!r}: {len(matches)} candidate(s)")
        return matches

    def _best_span(
        self,
        window: str,
        window_start: int,
        snippet: str,
        snippet_norm: str,
    ) -> TextAnchor | None:
        """Best-scoring substring of the window; earlier candidates win ties."""
        best_similarity = 0.0
        best_range: tuple[int, int] | None = None

        for factor in LENGTH_VARIATIONS:
            length = int(len(snippet) * factor)
            if length <= 0 or length > len(window):
                continue
            for offset in range(len(window) - length + 1):
                candidate = window[offset:offset + length]
                similarity = Levenshtein.normalized_similarity(normalize_text(candidate), snippet_norm)
                if similarity > best_similarity:
                    best_similarity = similarity
                    best_range = (offset, offset + length)

        if best_range is None:
            return None

        # Normalization ignores surrounding whitespace, so the span can drop it too
        offset, end = best_range
        while offset < end and window[offset].isspace():
            offset += 1
        while end > offset and window[end - 1].isspace():
            end -= 1

        return TextAnchor(
            start=window_start + offset,
            end=window_start + end,
            text=window[offset:end],
            similarity=best_similarity,
            original_snippet=snippet,
        )


_default_matcher = SimilarityMatcher()


def find_text_snippet(content: str, snippet: str, threshold: float = DEFAULT_THRESHOLD) -> list[TextAnchor]:
    """Module-level shortcut for ``SimilarityMatcher().find``."""
    return _default_matcher.find(content, snippet, threshold)


def find_text_snippets(
    content: str,
    snippets: Sequence[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[TextAnchor]:
    """Module-level shortcut for ``SimilarityMatcher().find_all``."""
    return _default_matcher.find_all(content, snippets, threshold)
