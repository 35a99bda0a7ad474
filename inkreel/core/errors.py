"""
Exceptions raised by the annotation engine.
"""


class AnnotationError(Exception):
    """Base class for annotation engine errors."""


class ValidationError(AnnotationError):
    """An annotation violates a model invariant. Nothing was changed."""


class NotFoundError(AnnotationError):
    """The targeted annotation id is not in the store."""

    def __init__(self, annotation_id: str):
        super().__init__(f"No annotation with id {annotation_id!r}")
        self.annotation_id = annotation_id


class PayloadImportError(AnnotationError):
    """An import payload is malformed. Store and history are untouched."""
