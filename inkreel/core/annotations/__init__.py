"""
Annotation model, store, history and persistence.
"""
from .models import (
    Annotation,
    AnnotationType,
    Point,
    Stroke,
    TextNote,
    clamp,
    clamp_point,
    new_id,
    validate_annotation,
)
from .persistence import AnnotationPersistence, ExportPayload
from .simplify import DEFAULT_EPSILON, simplify
from .store import AnnotationStore
from .undo_redo import UndoRedoStack

__all__ = [
    'Annotation',
    'AnnotationType',
    'Point',
    'Stroke',
    'TextNote',
    'clamp',
    'clamp_point',
    'new_id',
    'validate_annotation',
    'AnnotationPersistence',
    'ExportPayload',
    'DEFAULT_EPSILON',
    'simplify',
    'AnnotationStore',
    'UndoRedoStack',
]
