"""
Handles the JSON export payload: encoding, decoding and file save/load.
"""
import copy
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..errors import PayloadImportError, ValidationError
from .models import Annotation, annotation_from_dict, validate_annotation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPayload:
    """
    Snapshot of a session's annotations at export time.

    The payload is decoupled from the store: later store edits never reach
    it. The annotation objects it holds are plain dataclasses, so callers
    must treat them as read-only.
    """
    created_at: datetime
    video_url: Optional[str]
    annotations: Tuple[Annotation, ...] = field(default_factory=tuple)

    @staticmethod
    def capture(annotations: List[Annotation],
                video_url: Optional[str] = None) -> 'ExportPayload':
        """Snapshot annotations (deep-copied) with the current UTC time."""
        return ExportPayload(
            created_at=datetime.now(timezone.utc),
            video_url=video_url,
            annotations=tuple(copy.deepcopy(ann) for ann in annotations),
        )

    def to_dict(self):
        """Convert payload to dictionary for JSON serialization."""
        return {
            'createdAt': format_timestamp(self.created_at),
            'videoUrl': self.video_url,
            'annotations': [ann.to_dict() for ann in self.annotations],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a 'Z' suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


_FRACTION = re.compile(r'\.(\d+)')


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp, accepting a 'Z' suffix.

    Fractional seconds of any length are padded or cut to microseconds,
    which older interpreters require.
    """
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    value = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), value, count=1)
    return datetime.fromisoformat(value)


def payload_from_dict(data) -> ExportPayload:
    """
    Decode and validate a payload dictionary.

    Raises:
        PayloadImportError: if fields are missing or ill-typed, an
            annotation is invalid, or ids repeat
    """
    if not isinstance(data, dict):
        raise PayloadImportError("Payload must be a JSON object")
    try:
        raw_annotations = data['annotations']
        if not isinstance(raw_annotations, list):
            raise TypeError("'annotations' must be a list")
        created_raw = data['createdAt']
        if not isinstance(created_raw, str):
            raise TypeError("'createdAt' must be a string")
        created_at = parse_timestamp(created_raw)
        video_url = data.get('videoUrl')
        if video_url is not None and not isinstance(video_url, str):
            raise TypeError("'videoUrl' must be a string or null")
        annotations = [annotation_from_dict(raw) for raw in raw_annotations]
    except KeyError as e:
        raise PayloadImportError(f"Missing required field {e}") from e
    except (TypeError, ValueError) as e:
        raise PayloadImportError(f"Malformed payload: {e}") from e

    seen = set()
    for index, annotation in enumerate(annotations):
        try:
            validate_annotation(annotation)
        except ValidationError as e:
            raise PayloadImportError(f"Annotation {index} is invalid: {e}") from e
        if annotation.id in seen:
            raise PayloadImportError(f"Duplicate annotation id {annotation.id!r}")
        seen.add(annotation.id)

    return ExportPayload(created_at=created_at, video_url=video_url,
                         annotations=tuple(annotations))


def loads(text) -> ExportPayload:
    """
    Parse a JSON payload.

    Args:
        text: JSON document as str or bytes

    Raises:
        PayloadImportError: on malformed JSON or invalid content
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise PayloadImportError(f"Invalid JSON: {e}") from e
    return payload_from_dict(data)


class AnnotationPersistence:
    """Saves and loads export payloads to/from JSON files."""

    def save_to_json(self, payload: ExportPayload, file_path: str) -> None:
        """
        Write a payload to a JSON file, creating parent directories.

        Args:
            payload: Snapshot to write
            file_path: Destination path
        """
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(payload.to_json())
        logger.info("Exported %d annotations to %s",
                    len(payload.annotations), file_path)

    def load_from_json(self, file_path: str) -> ExportPayload:
        """
        Read a payload from a JSON file.

        Raises:
            PayloadImportError: if the file cannot be read or is malformed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                text = f.read()
        except OSError as e:
            raise PayloadImportError(f"Cannot read {file_path}: {e}") from e
        return loads(text)
