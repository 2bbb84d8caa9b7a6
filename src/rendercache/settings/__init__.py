from .loader import RuntimeSettings, default_settings_path, load_settings, save_settings
from .schema import DEFAULT_SETTINGS, SETTINGS_SCHEMA, merge_with_defaults, validate_settings

__all__ = [
    "DEFAULT_SETTINGS",
    "RuntimeSettings",
    "SETTINGS_SCHEMA",
    "default_settings_path",
    "load_settings",
    "merge_with_defaults",
    "save_settings",
    "validate_settings",
]
