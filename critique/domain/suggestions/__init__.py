"""
Suggestions - lifecycle of anchored insights on a live document.
"""

from critique.domain.suggestions.board import EvaluationVerdict, SuggestionBoard, SuggestionEvaluator

__all__ = ["EvaluationVerdict", "SuggestionBoard", "SuggestionEvaluator"]
