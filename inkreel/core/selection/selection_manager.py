"""
Annotation selection state and hit-testing.
"""
from typing import FrozenSet, Iterable, Optional, Tuple

from ..annotations.models import AnnotationType, Point
from ..annotations.store import AnnotationStore
from .text_metrics import ApproximateTextMeasurer, text_box

DEFAULT_HIT_PADDING = 4.0


class SelectionManager:
    """
    Tracks the selected annotation ids.

    Supports:
    - Multi-selection (select all active at a time)
    - A primary id for single-target edits (text edit, font resize)
    - Topmost-first hit-testing of text notes
    """

    def __init__(self, measurer=None, padding: float = DEFAULT_HIT_PADDING):
        self.measurer = measurer if measurer is not None else ApproximateTextMeasurer()
        self.padding = padding

        self._selected: FrozenSet[str] = frozenset()
        self.primary: Optional[str] = None

    @property
    def selected(self) -> FrozenSet[str]:
        return self._selected

    def has_selection(self) -> bool:
        return bool(self._selected)

    def select(self, ids: Iterable[str], primary: Optional[str] = None) -> None:
        """
        Replace the selection.

        Args:
            ids: Ids to select
            primary: Primary id; must be one of ids
        """
        selected = frozenset(ids)
        if primary is not None and primary not in selected:
            raise ValueError(f"Primary id {primary!r} is not selected")
        self._selected = selected
        self.primary = primary

    def clear(self) -> None:
        """Clear all selection state."""
        self._selected = frozenset()
        self.primary = None

    def prune(self, store: AnnotationStore) -> None:
        """Forget ids that are no longer in the store."""
        kept = frozenset(i for i in self._selected if i in store)
        self._selected = kept
        if self.primary not in kept:
            self.primary = None

    def hit_test(self, point: Point, t: float, store: AnnotationStore,
                 frame_size: Tuple[float, float],
                 default_font_size: float) -> Optional[str]:
        """
        Find the topmost text note under a point.

        Strokes are not point-selectable.

        Args:
            point: Normalized position
            t: Media time
            store: Annotations to search
            frame_size: Drawing surface (width, height) in pixels
            default_font_size: Size for notes without their own

        Returns:
            Id of the hit note, or None
        """
        width, height = frame_size
        px = point.x * width
        py = point.y * height

        # Check in reverse order (topmost first)
        for ann in reversed(store.query_active(t)):
            if ann.annotation_type is not AnnotationType.TEXT:
                continue
            left, top, right, bottom = text_box(
                ann.text,
                (ann.x * width, ann.y * height),
                ann.effective_font_size(default_font_size),
                self.measurer,
                self.padding,
            )
            if left <= px <= right and top <= py <= bottom:
                return ann.id
        return None

    def select_all(self, t: float, store: AnnotationStore) -> None:
        """Select every annotation active at t."""
        ids = [ann.id for ann in store.query_active(t)]
        self.select(ids, ids[0] if len(ids) == 1 else None)
