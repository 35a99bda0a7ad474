"""
Controller translating discrete user actions into session mutations.
"""
import copy
import dataclasses
import logging
import os
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from ..core.annotations.models import (
    ID_PREFIXES,
    Annotation,
    AnnotationType,
    Stroke,
    TextNote,
    clamp,
    clamp_point,
    new_id,
    validate_annotation,
)
from ..core.annotations.persistence import (
    AnnotationPersistence,
    ExportPayload,
    loads,
    payload_from_dict,
)
from ..core.annotations.simplify import simplify
from ..core.errors import AnnotationError, PayloadImportError, ValidationError
from ..core.session import AnnotationSession
from ..core.timeline import TimelineSpan, annotation_spans
from ..utils.resource_loader import get_export_dir

logger = logging.getLogger(__name__)

EXPORT_FILE_NAME = "annotations.json"


class CommandDispatcher(QObject):
    """
    Single entry point for every annotation command.

    Each mutating command validates first, then takes exactly one history
    snapshot, then mutates; a command that raises leaves the session
    untouched. Redundant commands (undo with empty history, delete with
    nothing selected, ...) are no-ops.
    """

    # Signals
    annotations_changed = pyqtSignal()  # Emitted when the store changes
    selection_changed = pyqtSignal()  # Emitted when the selection changes
    history_changed = pyqtSignal(bool, bool)  # can_undo, can_redo

    def __init__(self, session: AnnotationSession, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.session = session
        self.persistence = AnnotationPersistence()

    @property
    def settings(self):
        return self.session.settings

    # Drawing

    def begin_stroke(self, point: Tuple[float, float], t: float,
                     color: Optional[str] = None, width: Optional[float] = None,
                     duration: Optional[float] = None) -> str:
        """
        Start drawing a stroke at a point.

        A stroke still pending from an earlier gesture is committed first.

        Returns:
            Id the stroke will have once committed

        Raises:
            ValidationError: if time, color, width or duration are invalid
        """
        s = self.settings
        stroke = Stroke(
            id=new_id(ID_PREFIXES[AnnotationType.STROKE]),
            timestamp=t,
            duration=duration if duration is not None else s.default_duration,
            color=color if color is not None else s.default_color,
            points=[clamp_point(point)],
            width=width if width is not None else s.default_width,
        )
        validate_annotation(stroke)

        if self.session.pending_stroke is not None:
            self.commit_stroke()
        self.session.pending_stroke = stroke
        return stroke.id

    def extend_stroke(self, point: Tuple[float, float]) -> bool:
        """
        Append a point to the pending stroke.

        Returns:
            False if no stroke is being drawn
        """
        stroke = self.session.pending_stroke
        if stroke is None:
            return False
        stroke.points.append(clamp_point(point))
        return True

    def commit_stroke(self) -> Optional[str]:
        """
        Simplify the pending stroke and add it to the store.

        Returns:
            Id of the committed stroke, or None if nothing was pending
        """
        stroke = self.session.pending_stroke
        if stroke is None:
            return None

        points = simplify(stroke.points, self.settings.simplify_epsilon)
        logger.debug("Simplified stroke %s from %d to %d points",
                     stroke.id, len(stroke.points), len(points))
        self._add([dataclasses.replace(stroke, points=points)])
        self.session.pending_stroke = None
        return stroke.id

    def cancel_stroke(self) -> Optional[str]:
        """
        Handle an interrupted gesture.

        The pending stroke is committed, not discarded, so nothing drawn is
        silently lost.
        """
        return self.commit_stroke()

    def add_text(self, text: str, t: float,
                 position: Optional[Tuple[float, float]] = None,
                 color: Optional[str] = None,
                 font_size: Optional[float] = None,
                 duration: Optional[float] = None) -> str:
        """
        Place a text note.

        Returns:
            Id of the new note

        Raises:
            ValidationError: if the note would be invalid (e.g. empty text)
        """
        s = self.settings
        if position is None:
            position = (s.default_text_x, s.default_text_y)
        anchor = clamp_point(position)
        note = TextNote(
            id=new_id(ID_PREFIXES[AnnotationType.TEXT]),
            timestamp=t,
            duration=duration if duration is not None else s.default_duration,
            color=color if color is not None else s.default_color,
            x=anchor.x,
            y=anchor.y,
            text=text,
            font_size=font_size,
        )
        self._add([note])
        return note.id

    # Editing

    def update_annotation(self, annotation_id: str,
                          patch: Dict[str, Any]) -> Annotation:
        """
        Change fields of an annotation (position, duration, text, size...).

        A patch that leaves the annotation as it was records no history.

        Returns:
            Copy of the updated annotation

        Raises:
            NotFoundError: if the id is absent
            ValidationError: if the result would be invalid
        """
        store = self.session.store
        try:
            candidate = store.prepare_update(annotation_id, patch)
        except AnnotationError as e:
            logger.warning("Update of %s refused: %s", annotation_id, e)
            raise

        current = store.get(annotation_id)
        if candidate == current:
            return copy.deepcopy(current)

        self._snapshot()
        updated = store.update(annotation_id, patch)
        self._annotations_changed()
        return copy.deepcopy(updated)

    def edit_text(self, text: str) -> Optional[Annotation]:
        """Replace the text of the primary selected note; no-op otherwise."""
        target = self._primary_text_note()
        if target is None:
            return None
        return self.update_annotation(target.id, {'text': text})

    def set_font_size(self, font_size: Optional[float]) -> Optional[Annotation]:
        """Resize the primary selected note; None restores the default."""
        target = self._primary_text_note()
        if target is None:
            return None
        return self.update_annotation(target.id, {'font_size': font_size})

    def drag_selected(self, delta: Tuple[float, float]) -> int:
        """
        Move every selected annotation by a normalized offset.

        Each annotation stays inside the frame: its offset is clamped
        so strokes keep their shape. Input adapters should call this once
        per completed drag with the accumulated delta.

        Returns:
            Number of annotations moved
        """
        dx, dy = delta
        selected = self.session.selection.selected
        if not selected or (dx == 0 and dy == 0):
            return 0

        store = self.session.store
        patches = []
        for ann in store:
            if ann.id in selected:
                patch = _translation_patch(ann, dx, dy)
                # Skip annotations already pinned against the frame edge
                if store.prepare_update(ann.id, patch) != ann:
                    patches.append((ann.id, patch))
        if not patches:
            return 0

        self._snapshot()
        for annotation_id, patch in patches:
            store.update(annotation_id, patch)
        self._annotations_changed()
        return len(patches)

    def duplicate(self, annotation_id: Optional[str], t: float) -> Optional[str]:
        """
        Copy an annotation to time t under a new id.

        The copy keeps the exact position of the original, so the two
        overlap when both are active.

        Args:
            annotation_id: Source; the primary selection if None

        Returns:
            Id of the copy, or None when there is nothing to duplicate
        """
        if annotation_id is None:
            annotation_id = self.session.selection.primary
        source = self.session.store.get(annotation_id) if annotation_id else None
        if source is None:
            return None

        clone = dataclasses.replace(
            copy.deepcopy(source),
            id=new_id(ID_PREFIXES[source.annotation_type]),
            timestamp=t,
        )
        self._add([clone])
        self._select([clone.id], clone.id)
        return clone.id

    def delete_annotations(self, ids: Optional[Iterable[str]] = None) -> int:
        """
        Delete annotations; the current selection if ids is None.

        Unknown ids are ignored.

        Returns:
            Number of annotations deleted
        """
        if ids is None:
            ids = self.session.selection.selected
        wanted = set(ids)
        store = self.session.store
        doomed = [i for i in store.ids() if i in wanted]
        if not doomed:
            return 0

        self._snapshot()
        for annotation_id in doomed:
            store.remove(annotation_id)
        self._annotations_changed()

        before = self.session.selection.selected
        self.session.selection.prune(store)
        if self.session.selection.selected != before:
            self.selection_changed.emit()
        return len(doomed)

    def clear_all(self) -> bool:
        """
        Delete every annotation (undoable).

        Returns:
            False if the store was already empty
        """
        if len(self.session.store) == 0:
            return False
        self._snapshot()
        self.session.store.remove_all()
        self._annotations_changed()
        self.clear_selection()
        return True

    # Selection

    def select_at(self, point: Tuple[float, float], t: float) -> Optional[str]:
        """
        Select the topmost text note under a point, or clear the selection.

        Returns:
            Id of the selected note, or None
        """
        hit = self.session.selection.hit_test(
            clamp_point(point), t, self.session.store,
            self.session.frame_size, self.settings.default_font_size,
        )
        if hit is None:
            self.clear_selection()
        else:
            self._select([hit], hit)
        return hit

    def select_all(self, t: float) -> FrozenSet[str]:
        """Select every annotation active at t."""
        self.session.selection.select_all(t, self.session.store)
        self.selection_changed.emit()
        return self.session.selection.selected

    def clear_selection(self) -> None:
        if self.session.selection.has_selection():
            self.session.selection.clear()
            self.selection_changed.emit()

    # Clipboard

    def copy(self) -> int:
        """
        Copy the selected annotations.

        Returns:
            Number of annotations copied; 0 leaves the clipboard untouched
        """
        selected = self.session.selection.selected
        if not selected:
            return 0
        return self.session.clipboard.copy(selected, self.session.store)

    def cut(self) -> int:
        """Copy then delete the selected annotations as one undoable step."""
        selected = self.session.selection.selected
        if not selected:
            return 0
        self.session.clipboard.copy(selected, self.session.store)
        return self.delete_annotations(selected)

    def paste(self, t: float) -> List[str]:
        """
        Add copies of the clipboard at time t and select them.

        Returns:
            Ids of the pasted annotations
        """
        if not self.session.clipboard.has_content():
            return []
        pasted = self.session.clipboard.paste(t)
        self._add(pasted)
        ids = [ann.id for ann in pasted]
        self._select(ids, ids[0] if len(ids) == 1 else None)
        return ids

    # History

    def undo(self) -> bool:
        """
        Undo the last annotation action.

        Returns:
            True if undo was successful
        """
        history = self.session.history
        if not history.can_undo():
            return False
        previous_state = history.undo(self.session.store.list())
        self.session.store.replace_all(previous_state)
        self._annotations_changed()
        self.clear_selection()
        return True

    def redo(self) -> bool:
        """
        Redo the last undone annotation action.

        Returns:
            True if redo was successful
        """
        history = self.session.history
        if not history.can_redo():
            return False
        next_state = history.redo(self.session.store.list())
        self.session.store.replace_all(next_state)
        self._annotations_changed()
        self.clear_selection()
        return True

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return self.session.history.can_undo()

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return self.session.history.can_redo()

    # Import / export

    def import_payload(self, payload) -> int:
        """
        Replace all annotations with those of an exported payload.

        Args:
            payload: JSON text (str or bytes) or an already-decoded dict

        Returns:
            Number of annotations imported

        Raises:
            PayloadImportError: if the payload is malformed; nothing changes
        """
        try:
            if isinstance(payload, dict):
                decoded = payload_from_dict(payload)
            else:
                decoded = loads(payload)
        except PayloadImportError as e:
            logger.warning("Import aborted: %s", e)
            raise

        return self._replace_from(decoded)

    def export_payload(self) -> ExportPayload:
        """Detached snapshot of all annotations and the media reference."""
        return ExportPayload.capture(self.session.store.list(),
                                     self.session.video_url)

    def export_json(self) -> str:
        return self.export_payload().to_json()

    def export_to_file(self, file_path: Optional[str] = None) -> str:
        """
        Write the export payload to a JSON file.

        Args:
            file_path: Destination; annotations.json in the export dir if None

        Returns:
            The path written
        """
        if file_path is None:
            file_path = os.path.join(str(get_export_dir()), EXPORT_FILE_NAME)
        self.persistence.save_to_json(self.export_payload(), file_path)
        return file_path

    def import_from_file(self, file_path: str) -> int:
        """Import a payload previously written by export_to_file."""
        try:
            payload = self.persistence.load_from_json(file_path)
        except PayloadImportError as e:
            logger.warning("Import from %s aborted: %s", file_path, e)
            raise
        return self._replace_from(payload)

    # Session

    def load_media(self, video_url: Optional[str]) -> None:
        """Start over on a new media source; history is not kept."""
        self.session.reset(video_url)
        self._annotations_changed()
        self.selection_changed.emit()

    def set_frame_size(self, width: float, height: float) -> None:
        """Record the drawing surface size used for hit-testing."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame size must be positive, got {width}x{height}")
        self.session.frame_size = (width, height)

    # Queries

    def query_active(self, t: float) -> List[Annotation]:
        """Annotations to draw at time t, bottom to top. Do not mutate."""
        return self.session.store.query_active(t)

    def list_all(self) -> List[Annotation]:
        return self.session.store.list()

    def current_selection(self) -> FrozenSet[str]:
        return self.session.selection.selected

    def primary_selection(self) -> Optional[str]:
        return self.session.selection.primary

    def pending_stroke(self) -> Optional[Stroke]:
        """Copy of the stroke being drawn, for live preview."""
        stroke = self.session.pending_stroke
        return None if stroke is None else copy.deepcopy(stroke)

    def timeline_spans(self, media_duration: float) -> List[TimelineSpan]:
        return annotation_spans(self.session.store, media_duration)

    # Internals

    def _replace_from(self, payload: ExportPayload) -> int:
        self._snapshot()
        self.session.store.replace_all(copy.deepcopy(list(payload.annotations)))
        self._annotations_changed()
        self.clear_selection()
        logger.info("Imported %d annotations", len(payload.annotations))
        return len(payload.annotations)

    def _add(self, annotations: List[Annotation]) -> None:
        store = self.session.store
        fresh = set()
        for ann in annotations:
            store.check_can_add(ann)
            if ann.id in fresh:
                raise ValidationError(f"Duplicate annotation id {ann.id!r}")
            fresh.add(ann.id)

        self._snapshot()
        for ann in annotations:
            store.add(ann)
        self._annotations_changed()

    def _snapshot(self) -> None:
        self.session.history.snapshot(self.session.store.list())

    def _select(self, ids: List[str], primary: Optional[str]) -> None:
        self.session.selection.select(ids, primary)
        self.selection_changed.emit()

    def _annotations_changed(self) -> None:
        self.annotations_changed.emit()
        self.history_changed.emit(self.can_undo(), self.can_redo())

    def _primary_text_note(self) -> Optional[TextNote]:
        primary = self.session.selection.primary
        ann = self.session.store.get(primary) if primary else None
        if ann is None or ann.annotation_type is not AnnotationType.TEXT:
            return None
        return ann


def _translation_patch(annotation: Annotation, dx: float, dy: float) -> Dict[str, Any]:
    if annotation.annotation_type is AnnotationType.TEXT:
        return {'x': clamp(annotation.x + dx), 'y': clamp(annotation.y + dy)}

    xs = [p.x for p in annotation.points]
    ys = [p.y for p in annotation.points]
    dx = clamp(dx, -min(xs), 1 - max(xs))
    dy = clamp(dy, -min(ys), 1 - max(ys))
    return {'points': [(clamp(p.x + dx), clamp(p.y + dy)) for p in annotation.points]}
