"""
Text Change Detector.

Computes the edited region between two document versions and keeps
suggestion anchors valid across it: anchors are shifted, clipped or
retracted depending on how much of their text the edit touched.

The diff is deliberately single-hunk (longest common prefix + suffix).
Edits arrive at keystroke granularity, so simultaneous disjoint edits
are rare; when they do happen they are reported as one large hunk.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Sequence

from critique.app.config import AnchoringConfig
from critique.core.models.anchor import TextAnchor
from critique.core.models.document import ChangeAnalysis, ChangeRecord, DocumentEdit, EditType
from critique.core.models.suggestion import Suggestion
from critique.utils.logging import get_logger

logger = get_logger(__name__)


def diff(old: str, new: str) -> DocumentEdit | None:
    """Single edited region between ``old`` and ``new``; None when identical."""
    if old == new:
        return None

    limit = min(len(old), len(new))
    prefix = 0
    while prefix < limit and old[prefix] == new[prefix]:
        prefix += 1

    # The suffix may not reach back into the shared prefix of either version
    suffix = 0
    max_suffix = limit - prefix
    while suffix < max_suffix and old[len(old) - 1 - suffix] == new[len(new) - 1 - suffix]:
        suffix += 1

    old_end = len(old) - suffix
    new_end = len(new) - suffix
    old_text = old[prefix:old_end]
    new_text = new[prefix:new_end]

    if not old_text:
        edit_type = EditType.INSERT
    elif not new_text:
        edit_type = EditType.DELETE
    else:
        edit_type = EditType.REPLACE

    return DocumentEdit(
        type=edit_type,
        start=prefix,
        old_end=old_end,
        new_end=new_end,
        old_text=old_text,
        new_text=new_text,
    )


class TextChangeDetector:
    """Tracks document snapshots and remaps anchors across edits."""

    def __init__(self, config: AnchoringConfig | None = None):
        self.config = config or AnchoringConfig()
        self.previous_text: str | None = None
        self.history: deque[ChangeRecord] = deque(maxlen=self.config.history_limit)

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    def detect_changes(self, old: str, new: str) -> list[DocumentEdit]:
        edit = diff(old, new)
        return [edit] if edit is not None else []

    def analyze_changes(self, new_text: str) -> ChangeAnalysis:
        """Compare a new snapshot with the previous one and remember it."""
        if self.previous_text is None:
            self.previous_text = new_text
            return ChangeAnalysis(type="initial")

        changes = self.detect_changes(self.previous_text, new_text)
        if changes:
            self.history.append(
                ChangeRecord(
                    previous_length=len(self.previous_text),
                    current_length=len(new_text),
                    changes=changes,
                )
            )
        self.previous_text = new_text
        return ChangeAnalysis(type="update", changes=changes)

    def reset(self) -> None:
        self.previous_text = None
        self.history.clear()

    # ------------------------------------------------------------------
    # Anchor remapping
    # ------------------------------------------------------------------

    def remap_anchor(self, anchor: TextAnchor, edit: DocumentEdit) -> TextAnchor | None:
        """Position of ``anchor`` after ``edit``; None when it must be retracted."""
        delta = edit.length_delta

        if edit.old_end <= anchor.start:
            return anchor.moved(anchor.start + delta, anchor.end + delta)
        if edit.start >= anchor.end:
            return anchor

        size = anchor.length
        if size == 0:
            # An empty anchor strictly inside the replaced region has nothing left to point at
            return None

        overlap = max(0, min(anchor.end, edit.old_end) - max(anchor.start, edit.start))
        fraction = overlap / size
        if fraction > self.config.retraction_overlap:
            return None

        if overlap > 0 and edit.start <= anchor.start:
            return anchor.moved(edit.new_end, anchor.end + delta)
        if overlap > 0 and edit.old_end >= anchor.end:
            return anchor.moved(anchor.start, edit.start)
        # Edit strictly inside the anchor
        return anchor.moved(anchor.start, anchor.end + delta)

    def update_anchors(
        self,
        suggestions: Sequence[Suggestion],
        changes: Sequence[DocumentEdit],
        document: str | None = None,
    ) -> list[Suggestion]:
        """Remap every active suggestion across ``changes``.

        A suggestion loses the anchors an edit retracted; if more than half
        of its anchors go at once, the whole suggestion is retracted.
        When ``document`` is given the surviving anchors' text is refreshed.
        """
        if not changes:
            return list(suggestions)
        return [self._update_suggestion(s, changes, document) for s in suggestions]

    def _update_suggestion(
        self,
        suggestion: Suggestion,
        changes: Sequence[DocumentEdit],
        document: str | None,
    ) -> Suggestion:
        if not suggestion.is_active:
            return suggestion

        anchors = list(suggestion.anchors)
        for edit in changes:
            remapped = [self.remap_anchor(anchor, edit) for anchor in anchors]
            survivors = [a for a in remapped if a is not None]
            retracted = len(remapped) - len(survivors)

            if retracted > len(anchors) / 2:
                logger.info(f"Retracting suggestion {suggestion.id}: {retracted}/{len(anchors)} anchors invalidated")
                return suggestion.retract(f"Text was significantly modified in {retracted} location(s)")
            if retracted:
                logger.debug(f"Suggestion {suggestion.id} lost {retracted} anchor(s) to {edit.describe()}")
            anchors = survivors

        if document is not None:
            anchors = [a.moved(a.start, a.end, document) for a in anchors if a.within(len(document))]
            if not anchors:
                return suggestion.retract("Anchored text is no longer in the document")

        return suggestion.with_anchors(anchors)

    # ------------------------------------------------------------------
    # Re-evaluation
    # ------------------------------------------------------------------

    def needs_re_evaluation(self, suggestion: Suggestion, changes: Iterable[DocumentEdit]) -> bool:
        """Whether an external evaluator should look at the suggestion again.

        ``suggestion`` is expected to carry anchors already remapped into
        the new document. An edit counts when its new-side range overlaps
        an anchor, or when it changed the document length within
        ``nearby_window`` characters of an anchor boundary.
        """
        if not suggestion.is_active:
            return False
        changes = list(changes)
        if not changes:
            return False

        nearby = self.config.nearby_window
        for anchor in suggestion.anchors:
            for change in changes:
                if change.start < anchor.end and change.new_end > anchor.start:
                    return True
                distance = min(abs(change.start - anchor.start), abs(change.new_end - anchor.end))
                if distance <= nearby and change.length_delta != 0:
                    return True
        return False

    def relevant_changes(self, suggestion: Suggestion, changes: Iterable[DocumentEdit]) -> list[DocumentEdit]:
        """Changes overlapping a suggestion anchor or within the context window of one."""
        window = self.config.context_window
        relevant = []
        for change in changes:
            for anchor in suggestion.anchors:
                overlaps = change.start < anchor.end and change.new_end > anchor.start
                nearby = (
                    abs(change.start - anchor.start) <= window
                    or abs(change.new_end - anchor.end) <= window
                )
                if overlaps or nearby:
                    relevant.append(change)
                    break
        return relevant

    def prepare_evaluation(
        self,
        suggestion: Suggestion,
        original_text: str,
        current_text: str,
        changes: Iterable[DocumentEdit],
    ) -> dict[str, Any]:
        """Bundle the material an external evaluator needs for one suggestion."""
        relevant = self.relevant_changes(suggestion, changes)
        return {
            "suggestion": suggestion,
            "original_text": original_text,
            "modified_text": current_text,
            "changes": relevant,
            "change_descriptions": [c.describe() for c in relevant],
            "needs_evaluation": bool(relevant),
        }
