"""
Session settings: defaults for new annotations and engine tuning.

Values come from, in increasing priority: the dataclass defaults, a
``settings.json`` file in the user config directory, and ``INKREEL_*``
environment variables (e.g. ``INKREEL_DEFAULT_DURATION=3``).
"""
import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .utils.resource_loader import get_config_dir

logger = logging.getLogger(__name__)

ENV_PREFIX = "INKREEL_"
SETTINGS_FILE = "settings.json"


@dataclass
class Settings:
    """Tunable defaults for an annotation session."""
    # New annotations
    default_color: str = "#ffdd00"
    default_width: float = 3.0
    default_duration: float = 2.0
    default_font_size: float = 18.0
    default_text_x: float = 0.5
    default_text_y: float = 0.1

    # Engine
    simplify_epsilon: float = 0.003
    history_limit: int = 20
    hit_padding: float = 4.0

    # Surface size used until the renderer reports one
    frame_width: float = 1280.0
    frame_height: float = 720.0

    mirror_system_clipboard: bool = False

    def __post_init__(self):
        self.validate()

    @property
    def frame_size(self) -> Tuple[float, float]:
        return (self.frame_width, self.frame_height)

    def validate(self) -> None:
        """Raise ValueError if a setting is out of range."""
        positive = ('default_width', 'default_duration', 'default_font_size',
                    'frame_width', 'frame_height')
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.simplify_epsilon < 0:
            raise ValueError("simplify_epsilon must be non-negative")
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        if self.hit_padding < 0:
            raise ValueError("hit_padding must be non-negative")
        if not 0 <= self.default_text_x <= 1 or not 0 <= self.default_text_y <= 1:
            raise ValueError("default text position must be normalized")
        if not self.default_color:
            raise ValueError("default_color must not be empty")

    def replace(self, **changes) -> 'Settings':
        return dataclasses.replace(self, **changes)


def _coerce(field_type, raw: str):
    if field_type in (bool, 'bool'):
        lowered = raw.strip().lower()
        if lowered in ('1', 'true', 'yes', 'on'):
            return True
        if lowered in ('0', 'false', 'no', 'off'):
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if field_type in (int, 'int'):
        return int(raw)
    if field_type in (float, 'float'):
        return float(raw)
    return raw


def load_settings(path: Optional[Path] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from the config file and environment.

    Args:
        path: Settings file; defaults to settings.json in the config dir
        environ: Environment mapping; defaults to os.environ

    Returns:
        Validated settings

    Raises:
        ValueError: if a value is malformed or out of range
    """
    if path is None:
        path = get_config_dir() / SETTINGS_FILE
    if environ is None:
        environ = os.environ

    fields = {f.name: f for f in dataclasses.fields(Settings)}
    values = {}

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except ValueError as e:
            raise ValueError(f"Invalid settings file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must hold a JSON object")
        for key, value in data.items():
            if key in fields:
                values[key] = value
            else:
                logger.warning("Ignoring unknown setting %r in %s", key, path)

    for name, f in fields.items():
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = _coerce(f.type, raw)

    try:
        settings = Settings(**values)
    except TypeError as e:
        raise ValueError(f"Invalid setting value: {e}") from e
    logger.debug("Loaded settings: %s", settings)
    return settings
