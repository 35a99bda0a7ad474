"""
Undo/Redo functionality for annotations.
"""
from typing import List, Optional
import copy

from .models import Annotation

DEFAULT_HISTORY_LIMIT = 20


class UndoRedoStack:
    """Bounded undo/redo history of full annotation-list snapshots."""

    def __init__(self, max_size: int = DEFAULT_HISTORY_LIMIT):
        """
        Initialize the undo/redo stack.

        Args:
            max_size: Maximum number of undo states to keep in history
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.undo_stack: List[List[Annotation]] = []
        self.redo_stack: List[List[Annotation]] = []
        self.max_size = max_size

    def snapshot(self, annotations: List[Annotation]) -> None:
        """
        Push the state before a mutation onto the undo stack.

        Args:
            annotations: Current list of annotations to save
        """
        self.undo_stack.append(_copy_state(annotations))

        # A new action invalidates anything that was undone
        self.redo_stack.clear()

        if len(self.undo_stack) > self.max_size:
            self.undo_stack.pop(0)

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return len(self.redo_stack) > 0

    def undo(self, current_state: List[Annotation]) -> Optional[List[Annotation]]:
        """
        Perform undo and return the previous state.

        Args:
            current_state: Current annotations before undo

        Returns:
            Previous state of annotations, or None if undo not available
        """
        if not self.can_undo():
            return None

        self.redo_stack.append(_copy_state(current_state))
        return _copy_state(self.undo_stack.pop())

    def redo(self, current_state: List[Annotation]) -> Optional[List[Annotation]]:
        """
        Perform redo and return the next state.

        Args:
            current_state: Current annotations before redo

        Returns:
            Next state of annotations, or None if redo not available
        """
        if not self.can_redo():
            return None

        self.undo_stack.append(_copy_state(current_state))
        if len(self.undo_stack) > self.max_size:
            self.undo_stack.pop(0)
        return _copy_state(self.redo_stack.pop())

    def clear(self) -> None:
        """Clear both stacks."""
        self.undo_stack.clear()
        self.redo_stack.clear()


def _copy_state(annotations: List[Annotation]) -> List[Annotation]:
    return [copy.deepcopy(ann) for ann in annotations]
