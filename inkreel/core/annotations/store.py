"""
Authoritative, ordered set of annotations for one session.
"""
import copy
import dataclasses
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..errors import NotFoundError, ValidationError
from .models import FROZEN_FIELDS, Annotation, AnnotationType, Point, validate_annotation


class AnnotationStore:
    """
    Owns the annotations of a session.

    Insertion order is z-order: later annotations are drawn on top.
    """

    def __init__(self):
        self._annotations: List[Annotation] = []

    def __len__(self) -> int:
        return len(self._annotations)

    def __contains__(self, annotation_id: str) -> bool:
        return self._index_of(annotation_id) is not None

    def __iter__(self) -> Iterator[Annotation]:
        """Iterate live annotations in z-order. Do not mutate them."""
        return iter(list(self._annotations))

    def add(self, annotation: Annotation) -> None:
        """
        Append an annotation.

        Raises:
            ValidationError: if the annotation is invalid or its id is taken
        """
        self.check_can_add(annotation)
        self._annotations.append(annotation)

    def check_can_add(self, annotation: Annotation) -> None:
        """Raise ValidationError unless add(annotation) would succeed."""
        validate_annotation(annotation)
        if annotation.id in self:
            raise ValidationError(f"Duplicate annotation id {annotation.id!r}")

    def get(self, annotation_id: str) -> Optional[Annotation]:
        """Live annotation with this id, or None."""
        index = self._index_of(annotation_id)
        return None if index is None else self._annotations[index]

    def prepare_update(self, annotation_id: str,
                       patch: Dict[str, Any]) -> Annotation:
        """
        Build the merged result of an update without applying it.

        Args:
            annotation_id: Target annotation
            patch: Field name to new value

        Returns:
            A validated copy of the annotation with the patch applied

        Raises:
            NotFoundError: if the id is absent
            ValidationError: if the patch touches id/type, names an unknown
                field, or yields an invalid annotation
        """
        current = self.get(annotation_id)
        if current is None:
            raise NotFoundError(annotation_id)

        frozen = FROZEN_FIELDS.intersection(patch)
        if frozen:
            raise ValidationError(f"Cannot change {', '.join(sorted(frozen))}")
        known = {f.name for f in dataclasses.fields(current)}
        unknown = set(patch) - known
        if unknown:
            raise ValidationError(
                f"Unknown field(s) for {current.annotation_type.value}: "
                f"{', '.join(sorted(unknown))}"
            )

        changes = dict(patch)
        if current.annotation_type is AnnotationType.STROKE and 'points' in changes:
            try:
                changes['points'] = [Point(*p) for p in changes['points']]
            except TypeError as e:
                raise ValidationError(f"Invalid points: {e}") from e

        candidate = dataclasses.replace(copy.deepcopy(current), **changes)
        validate_annotation(candidate)
        return candidate

    def update(self, annotation_id: str, patch: Dict[str, Any]) -> Annotation:
        """
        Merge a patch into an annotation in place.

        Returns:
            The updated (live) annotation
        """
        candidate = self.prepare_update(annotation_id, patch)
        current = self.get(annotation_id)
        for f in dataclasses.fields(candidate):
            setattr(current, f.name, getattr(candidate, f.name))
        return current

    def remove(self, annotation_id: str) -> bool:
        """
        Remove an annotation.

        Returns:
            True if annotation was found and removed
        """
        index = self._index_of(annotation_id)
        if index is None:
            return False
        del self._annotations[index]
        return True

    def remove_all(self) -> None:
        self._annotations.clear()

    def replace_all(self, annotations: Iterable[Annotation]) -> None:
        """
        Swap in a whole new set of annotations atomically.

        Raises:
            ValidationError: if any annotation is invalid or ids repeat;
                the store is left unchanged
        """
        incoming = list(annotations)
        seen = set()
        for annotation in incoming:
            validate_annotation(annotation)
            if annotation.id in seen:
                raise ValidationError(f"Duplicate annotation id {annotation.id!r}")
            seen.add(annotation.id)
        self._annotations = incoming

    def list(self) -> List[Annotation]:
        """Deep-copied snapshot of all annotations in z-order."""
        return [copy.deepcopy(ann) for ann in self._annotations]

    def ids(self) -> List[str]:
        return [ann.id for ann in self._annotations]

    def query_active(self, t: float) -> List[Annotation]:
        """
        Annotations whose active window contains t, in z-order.

        The window [timestamp, timestamp + duration] is inclusive at both
        ends. The returned objects are the live ones; callers must not
        mutate them.
        """
        return [ann for ann in self._annotations
                if ann.timestamp <= t <= ann.timestamp + ann.duration]

    def _index_of(self, annotation_id: str) -> Optional[int]:
        for index, ann in enumerate(self._annotations):
            if ann.id == annotation_id:
                return index
        return None
