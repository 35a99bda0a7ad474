"""
Core business logic for Inkreel: annotation model, history, selection.
"""
from .annotations import (
    Annotation,
    AnnotationStore,
    AnnotationType,
    ExportPayload,
    Point,
    Stroke,
    TextNote,
    UndoRedoStack,
    simplify,
)
from .clipboard import ClipboardController
from .errors import AnnotationError, NotFoundError, PayloadImportError, ValidationError
from .selection import SelectionManager
from .session import AnnotationSession

__all__ = [
    'Annotation',
    'AnnotationStore',
    'AnnotationType',
    'ExportPayload',
    'Point',
    'Stroke',
    'TextNote',
    'UndoRedoStack',
    'simplify',
    'ClipboardController',
    'AnnotationError',
    'NotFoundError',
    'PayloadImportError',
    'ValidationError',
    'SelectionManager',
    'AnnotationSession',
]
