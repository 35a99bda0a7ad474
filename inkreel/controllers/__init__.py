"""
Controllers connecting input adapters to the annotation session.
"""
from .command_dispatcher import CommandDispatcher

__all__ = [
    'CommandDispatcher',
]
