"""Domain layer - settings model and TOML persistence."""
from domain.models import ProfileSettings
from domain.settings_io import load_settings, save_settings

__all__ = [
    'ProfileSettings',
    'load_settings',
    'save_settings',
]
