"""
Utility functions and helpers.
"""
from .resource_loader import (
    get_app_data_dir,
    get_config_dir,
    get_export_dir,
)

__all__ = [
    'get_app_data_dir',
    'get_config_dir',
    'get_export_dir',
]
