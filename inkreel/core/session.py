"""
Annotation session: the single owner of all mutable engine state.
"""
import logging
from typing import Optional, Tuple

from ..config import Settings
from .annotations.models import Stroke
from .annotations.store import AnnotationStore
from .annotations.undo_redo import UndoRedoStack
from .clipboard import ClipboardController
from .selection.selection_manager import SelectionManager

logger = logging.getLogger(__name__)


class AnnotationSession:
    """
    State of one annotation session over one media source.

    Holds the store, history, selection, clipboard and the stroke being
    drawn. There is exactly one writer: the command dispatcher it is
    handed to.
    """

    def __init__(self, settings: Optional[Settings] = None, measurer=None):
        """
        Initialize a session.

        Args:
            settings: Defaults and tuning; Settings() if omitted
            measurer: Text measurer for hit-testing; an approximate one
                if omitted
        """
        self.settings = settings if settings is not None else Settings()

        self.store = AnnotationStore()
        self.history = UndoRedoStack(max_size=self.settings.history_limit)
        self.selection = SelectionManager(measurer=measurer,
                                          padding=self.settings.hit_padding)
        self.clipboard = ClipboardController(
            mirror_to_system=self.settings.mirror_system_clipboard)

        self.pending_stroke: Optional[Stroke] = None
        self.video_url: Optional[str] = None
        self.frame_size: Tuple[float, float] = self.settings.frame_size

    def reset(self, video_url: Optional[str] = None) -> None:
        """Drop every annotation, selection, clipboard entry and history state."""
        self.store.remove_all()
        self.history.clear()
        self.selection.clear()
        self.clipboard.clear()
        self.pending_stroke = None
        self.video_url = video_url
        logger.info("Session reset for media %s", video_url)
