"""
Annotation data model: strokes and text notes placed on a media timeline.
"""
import math
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple, Union

from ..errors import ValidationError

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class AnnotationType(Enum):
    STROKE = "stroke"
    TEXT = "text"


class Point(NamedTuple):
    """Frame-relative coordinate, both axes normalized to [0, 1]."""
    x: float
    y: float

    def to_dict(self):
        return {'x': self.x, 'y': self.y}

    @staticmethod
    def from_dict(data) -> 'Point':
        return Point(_number(data, 'x'), _number(data, 'y'))


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return min(high, max(low, value))


def clamp_point(point: Tuple[float, float]) -> Point:
    """Clamp raw pointer input into the normalized frame."""
    return Point(clamp(float(point[0])), clamp(float(point[1])))


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            break
    return "".join(reversed(digits))


def new_id(prefix: str = "") -> str:
    """
    Generate an opaque annotation id.

    Args:
        prefix: Short tag for the annotation kind ("s" or "t")

    Returns:
        Id of the form "<prefix>-<clock>-<random>"
    """
    clock = _to_base36(time.time_ns() // 1_000_000)
    salt = "".join(random.choice(_BASE36) for _ in range(6))
    return f"{prefix}-{clock}-{salt}"


@dataclass
class Stroke:
    """A freehand polyline visible during [timestamp, timestamp + duration]."""
    id: str
    timestamp: float
    duration: float
    color: str
    points: List[Point] = field(default_factory=list)
    width: float = 3.0

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.STROKE

    def to_dict(self):
        """Convert stroke to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'type': self.annotation_type.value,
            'timestamp': self.timestamp,
            'duration': self.duration,
            'color': self.color,
            'points': [p.to_dict() for p in self.points],
            'width': self.width,
        }

    @staticmethod
    def from_dict(data) -> 'Stroke':
        """Create stroke from dictionary."""
        points = data['points']
        if not isinstance(points, list):
            raise TypeError("'points' must be a list")
        return Stroke(
            id=_string(data, 'id'),
            timestamp=_number(data, 'timestamp'),
            duration=_number(data, 'duration'),
            color=_string(data, 'color'),
            points=[Point.from_dict(p) for p in points],
            width=_number(data, 'width'),
        )


@dataclass
class TextNote:
    """A text label anchored at (x, y), baseline-left."""
    id: str
    timestamp: float
    duration: float
    color: str
    x: float = 0.5
    y: float = 0.1
    text: str = ""
    font_size: Optional[float] = None

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.TEXT

    def effective_font_size(self, default: float) -> float:
        """Font size used for rendering and hit-testing."""
        return self.font_size if self.font_size is not None else default

    def to_dict(self):
        """Convert text note to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'type': self.annotation_type.value,
            'timestamp': self.timestamp,
            'duration': self.duration,
            'color': self.color,
            'x': self.x,
            'y': self.y,
            'text': self.text,
        }
        if self.font_size is not None:
            data['fontSize'] = self.font_size
        return data

    @staticmethod
    def from_dict(data) -> 'TextNote':
        """Create text note from dictionary."""
        font_size = data.get('fontSize')
        return TextNote(
            id=_string(data, 'id'),
            timestamp=_number(data, 'timestamp'),
            duration=_number(data, 'duration'),
            color=_string(data, 'color'),
            x=_number(data, 'x'),
            y=_number(data, 'y'),
            text=_string(data, 'text'),
            font_size=None if font_size is None else _number(data, 'fontSize'),
        )


Annotation = Union[Stroke, TextNote]

ID_PREFIXES = {
    AnnotationType.STROKE: "s",
    AnnotationType.TEXT: "t",
}

# Fields a patch may never touch.
FROZEN_FIELDS = frozenset({'id', 'type', 'annotation_type'})


def annotation_from_dict(data) -> Annotation:
    """Build the right variant from its serialized form."""
    if not isinstance(data, dict):
        raise TypeError("annotation must be an object")
    kind = AnnotationType(data['type'])
    if kind is AnnotationType.STROKE:
        return Stroke.from_dict(data)
    return TextNote.from_dict(data)


def validate_annotation(annotation: Annotation) -> None:
    """
    Check every model invariant of an annotation.

    Raises:
        ValidationError: describing the first violated invariant
    """
    if not isinstance(annotation, (Stroke, TextNote)):
        raise ValidationError(f"Not an annotation: {annotation!r}")
    if not isinstance(annotation.id, str) or not annotation.id:
        raise ValidationError("Annotation id must be a non-empty string")
    _check_number(annotation.timestamp, "timestamp", minimum=0.0)
    _check_number(annotation.duration, "duration", positive=True)
    if not isinstance(annotation.color, str) or not annotation.color:
        raise ValidationError("Color must be a non-empty string")

    if annotation.annotation_type is AnnotationType.STROKE:
        if len(annotation.points) < 1:
            raise ValidationError("A stroke needs at least one point")
        for point in annotation.points:
            _check_coordinate(point[0], "x")
            _check_coordinate(point[1], "y")
        _check_number(annotation.width, "width", positive=True)
    else:
        _check_coordinate(annotation.x, "x")
        _check_coordinate(annotation.y, "y")
        if not isinstance(annotation.text, str) or not annotation.text.strip():
            raise ValidationError("Text must be non-empty")
        if annotation.font_size is not None:
            _check_number(annotation.font_size, "font size", positive=True)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_number(value, name: str, minimum: Optional[float] = None,
                  positive: bool = False) -> None:
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number, got {value!r}")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {value}")
    if positive and value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def _check_coordinate(value, name: str) -> None:
    _check_number(value, name)
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} coordinate {value} is outside [0, 1]")


def _number(data, key: str) -> float:
    value = data[key]
    if not _is_number(value):
        raise TypeError(f"{key!r} must be a number, got {value!r}")
    return value


def _string(data, key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key!r} must be a string, got {value!r}")
    return value
