"""
Anchoring - fuzzy search, edit detection and anchor maintenance.
"""

from critique.domain.anchoring.change_detector import TextChangeDetector, diff
from critique.domain.anchoring.resolver import AnchorResolver, reanchor, resolve_insight_anchors
from critique.domain.anchoring.similarity import (
    SimilarityMatcher,
    find_text_snippet,
    find_text_snippets,
    normalize_text,
    similarity_score,
)

__all__ = [
    "AnchorResolver",
    "SimilarityMatcher",
    "TextChangeDetector",
    "diff",
    "find_text_snippet",
    "find_text_snippets",
    "normalize_text",
    "reanchor",
    "resolve_insight_anchors",
    "similarity_score",
]
