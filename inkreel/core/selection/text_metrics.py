"""
Text measurement used to hit-test text notes.
"""
from typing import Dict, Tuple

DEFAULT_FONT_FAMILY = "sans-serif"


class ApproximateTextMeasurer:
    """
    Estimates text width from an average glyph advance.

    Works without a GUI; good enough for proportional sans-serif fonts.
    """

    def __init__(self, advance_ratio: float = 0.6):
        self.advance_ratio = advance_ratio

    def text_width(self, text: str, font_size: float) -> float:
        return len(text) * font_size * self.advance_ratio


class QtTextMeasurer:
    """
    Measures text with QFontMetricsF.

    A QGuiApplication must exist before this is constructed.
    """

    def __init__(self, family: str = DEFAULT_FONT_FAMILY):
        # QtGui pulls in the platform GUI libraries; keep it off the
        # import path of headless users.
        from PyQt5.QtGui import QFont, QFontMetricsF

        self._font_class = QFont
        self._metrics_class = QFontMetricsF
        self.family = family
        self._metrics: Dict[float, object] = {}

    def _metrics_for(self, font_size: float):
        metrics = self._metrics.get(font_size)
        if metrics is None:
            font = self._font_class(self.family)
            font.setPixelSize(max(1, round(font_size)))
            metrics = self._metrics_class(font)
            self._metrics[font_size] = metrics
        return metrics

    def text_width(self, text: str, font_size: float) -> float:
        return self._metrics_for(font_size).horizontalAdvance(text)


def text_box(text: str, anchor_px: Tuple[float, float], font_size: float,
             measurer, padding: float) -> Tuple[float, float, float, float]:
    """
    Pixel bounding box (left, top, right, bottom) of a baseline-left label.

    Height equals the font size; the box is grown by padding on every side.
    """
    ax, ay = anchor_px
    width = measurer.text_width(text, font_size)
    return (ax - padding, ay - font_size - padding,
            ax + width + padding, ay + padding)
