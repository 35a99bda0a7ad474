"""
Inkreel: timed stroke and text annotations over a media timeline.
"""
from .config import Settings, load_settings
from .controllers import CommandDispatcher
from .core import AnnotationSession

__version__ = "0.1.0"

__all__ = [
    'Settings',
    'load_settings',
    'CommandDispatcher',
    'AnnotationSession',
]
