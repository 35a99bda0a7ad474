"""
Per-user directories for configuration and exported annotations.
"""
import os
import sys
from pathlib import Path

APP_NAME = "Inkreel"


def get_app_data_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the application data directory for storing user data.

    Args:
        app_name: Name of the application

    Returns:
        Path to the app data directory (not created)
    """
    if os.name == 'nt':  # Windows
        base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
    elif sys.platform == 'darwin':  # macOS
        base_dir = os.path.expanduser('~/Library/Application Support')
    else:  # Linux and others
        base_dir = os.environ.get('XDG_DATA_HOME', os.path.expanduser('~/.local/share'))

    return Path(base_dir) / app_name


def get_config_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the configuration directory for storing settings.

    Args:
        app_name: Name of the application

    Returns:
        Path to the config directory (not created)
    """
    if os.name == 'nt':  # Windows
        return get_app_data_dir(app_name) / "config"
    elif sys.platform == 'darwin':  # macOS
        return Path.home() / "Library" / "Preferences" / app_name
    # Linux
    base_dir = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return Path(base_dir) / app_name


def get_export_dir(app_name: str = APP_NAME) -> Path:
    """Default directory for exported annotation files."""
    return get_app_data_dir(app_name) / "exports"
