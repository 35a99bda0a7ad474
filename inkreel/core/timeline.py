"""
Timeline geometry: annotation spans, time labels and clamped seeking.
"""
from dataclasses import dataclass
from typing import Iterable, List

from .annotations.models import Annotation, AnnotationType

MIN_SPAN_PERCENT = 0.5


@dataclass(frozen=True)
class TimelineSpan:
    """Horizontal extent of an annotation on the timeline, in percent."""
    annotation_id: str
    annotation_type: AnnotationType
    start_pct: float
    width_pct: float


def annotation_spans(annotations: Iterable[Annotation],
                     media_duration: float) -> List[TimelineSpan]:
    """
    Lay out annotation windows along a timeline of the given length.

    Spans narrower than MIN_SPAN_PERCENT are widened so they stay visible.
    Returns nothing while the media duration is unknown (<= 0).
    """
    if media_duration <= 0:
        return []
    spans = []
    for ann in annotations:
        start = ann.timestamp / media_duration * 100
        end = (ann.timestamp + ann.duration) / media_duration * 100
        spans.append(TimelineSpan(ann.id, ann.annotation_type, start,
                                  max(end - start, MIN_SPAN_PERCENT)))
    return spans


def progress_percent(current: float, media_duration: float) -> float:
    if media_duration <= 0:
        return 0.0
    return current / media_duration * 100


def format_time(seconds: float) -> str:
    """Label like 1:05.3 for hover previews."""
    tenths = round(max(0.0, seconds) * 10)
    minutes, rest = divmod(tenths, 600)
    return f"{minutes}:{rest / 10:04.1f}"


def format_duration_label(seconds: float) -> str:
    """Label like 1:05 for the timeline end marker."""
    minutes, rest = divmod(round(max(0.0, seconds)), 60)
    return f"{minutes}:{rest:02d}"


def seek(current: float, delta: float, media_duration: float) -> float:
    """Move the playhead by delta seconds, staying within the media."""
    return min(max(0.0, media_duration), max(0.0, current + delta))
