"""
Annotation selection and hit-testing.
"""

from .selection_manager import SelectionManager
from .text_metrics import ApproximateTextMeasurer, QtTextMeasurer, text_box

__all__ = ["SelectionManager", "ApproximateTextMeasurer", "QtTextMeasurer", "text_box"]
