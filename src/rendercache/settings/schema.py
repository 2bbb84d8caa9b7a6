"""Schema helpers for the rendercache settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    DB_ERROR_WINDOW_SEC,
    DB_MAX_BACKOFF_SEC,
    DB_MAX_RETRIES,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT_SEC,
    DEFAULT_LONGEST_SIDE,
    DEFAULT_MIME_TYPE,
    SUPPORTED_MIME_TYPES,
)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "rendercache/settings.schema.json",
    "type": "object",
    "required": ["schema", "database", "thumbnails", "logging"],
    "properties": {
        "schema": {"const": "rendercache/settings@1"},
        "data_dir": {"type": ["string", "null"]},
        "database": {
            "type": "object",
            "properties": {
                "path": {"type": ["string", "null"]},
                "pool_size": {"type": "integer", "minimum": 1},
                "timeout": {"type": "number", "exclusiveMinimum": 0},
                "max_retries": {"type": "integer", "minimum": 1},
                "max_backoff": {"type": "number", "minimum": 0},
                "error_window": {"type": "number", "minimum": 0},
            },
            "additionalProperties": False,
        },
        "thumbnails": {
            "type": "object",
            "properties": {
                "store_dir": {"type": ["string", "null"]},
                "default_mime_type": {"enum": sorted(SUPPORTED_MIME_TYPES)},
                "default_longest_side": {"type": "integer", "minimum": 1},
            },
            "additionalProperties": False,
        },
        "security": {
            "type": "object",
            "properties": {
                "restricted": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": True,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "schema": "rendercache/settings@1",
    "data_dir": None,
    "database": {
        "path": None,
        "pool_size": DB_POOL_SIZE,
        "timeout": DB_POOL_TIMEOUT_SEC,
        "max_retries": DB_MAX_RETRIES,
        "max_backoff": DB_MAX_BACKOFF_SEC,
        "error_window": DB_ERROR_WINDOW_SEC,
    },
    "thumbnails": {
        "store_dir": None,
        "default_mime_type": DEFAULT_MIME_TYPE,
        "default_longest_side": DEFAULT_LONGEST_SIDE,
    },
    "security": {
        "restricted": False,
    },
    "logging": {
        "level": "INFO",
    },
}

_SECTIONS = ("database", "thumbnails", "security", "logging")

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result.

    Nested sections are merged key by key so a file may override a single
    value.  Raises :class:`jsonschema.ValidationError` on invalid input.
    """

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                merged.setdefault(key, {}).update(value)
                continue
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
