"""Locate, load and resolve the rendercache settings file."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from jsonschema import ValidationError

from ..config import DB_FILE_NAME, THUMBNAIL_DIR_NAME
from ..errors import ConfigLoadError, ConfigValidationError
from ..utils.jsonio import read_json, write_json
from .schema import DEFAULT_SETTINGS, merge_with_defaults, validate_settings

SETTINGS_ENV_VAR = "RENDERCACHE_SETTINGS"


def default_config_dir(env: Mapping[str, str] | None = None) -> Path:
    """Return the per-user configuration directory for the current platform."""

    env = os.environ if env is None else env
    if os.name == "nt":
        base = env.get("APPDATA")
        if base:
            return Path(base) / "rendercache"
        return Path.home() / "AppData" / "Roaming" / "rendercache"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "rendercache"
    base = env.get("XDG_CONFIG_HOME")
    if base:
        return Path(base) / "rendercache"
    return Path.home() / ".config" / "rendercache"


def default_settings_path(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    override = env.get(SETTINGS_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return default_config_dir(env) / "settings.json"


@dataclass(frozen=True)
class RuntimeSettings:
    """Validated settings with every path resolved."""

    data_dir: Path
    db_path: Path
    store_dir: Path
    pool_size: int
    timeout: float
    max_retries: int
    max_backoff: float
    error_window: float
    default_mime_type: str
    default_longest_side: int
    restricted: bool
    log_level: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path) -> RuntimeSettings:
        data_dir = Path(data.get("data_dir") or base_dir).expanduser()
        database = data["database"]
        thumbnails = data["thumbnails"]
        return cls(
            data_dir=data_dir,
            db_path=Path(database["path"]).expanduser() if database.get("path") else data_dir / DB_FILE_NAME,
            store_dir=(
                Path(thumbnails["store_dir"]).expanduser()
                if thumbnails.get("store_dir")
                else data_dir / THUMBNAIL_DIR_NAME
            ),
            pool_size=database["pool_size"],
            timeout=float(database["timeout"]),
            max_retries=database["max_retries"],
            max_backoff=float(database["max_backoff"]),
            error_window=float(database["error_window"]),
            default_mime_type=thumbnails["default_mime_type"],
            default_longest_side=thumbnails["default_longest_side"],
            restricted=bool(data.get("security", {}).get("restricted", False)),
            log_level=data["logging"]["level"],
        )


def load_settings(path: Path | None = None) -> RuntimeSettings:
    """Load the settings file (defaults when it does not exist) and resolve it.

    Relative locations default to the directory holding the settings file.
    """

    path = path or default_settings_path()
    payload = None
    if path.exists():
        try:
            payload = read_json(path)
        except (OSError, ValueError) as exc:
            raise ConfigLoadError(f"Cannot read settings {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigValidationError(f"Settings {path} must contain a JSON object")
    try:
        merged = merge_with_defaults(payload)
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid settings {path}: {exc.message}") from exc
    return RuntimeSettings.from_dict(merged, base_dir=path.parent)


def save_settings(path: Path, data: dict[str, Any] | None = None) -> None:
    """Validate and write *data* (the defaults when omitted) to *path*."""

    payload = data if data is not None else DEFAULT_SETTINGS
    try:
        validate_settings(payload)
    except ValidationError as exc:
        raise ConfigValidationError(exc.message) from exc
    write_json(path, payload)
