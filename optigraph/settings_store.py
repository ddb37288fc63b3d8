"""Persist settings and query history as JSON blobs in a local storage file.

The storage file is a single JSON object keyed by namespace, mirroring a
browser's local storage: ``optigraph_settings`` holds the settings blob and
``optigraph_history`` the saved history. Nothing in the core reads this
module directly; callers load a :class:`GraphSettings` here and pass it on.
"""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from optigraph.formats.settings import AuthMode, GraphSettings
from optigraph.query.history import QueryHistory

logger = logging.getLogger(__name__)

SETTINGS_KEY = "optigraph_settings"
HISTORY_KEY = "optigraph_history"
DEFAULT_STORAGE_PATH = Path.home() / ".optigraph" / "storage.json"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "OPTIGRAPH_ENDPOINT": "endpoint",
    "OPTIGRAPH_AUTH_MODE": "auth_mode",
    "OPTIGRAPH_SINGLE_KEY": "single_key",
    "OPTIGRAPH_APP_KEY": "app_key",
    "OPTIGRAPH_SECRET": "secret",
    "OPTIGRAPH_LOCALE": "default_locale",
}


def default_storage_path() -> Path:
    override = os.environ.get("OPTIGRAPH_STORAGE")
    return Path(override) if override else DEFAULT_STORAGE_PATH


class SettingsStore:
    """Get/set access to the persisted settings and history blobs."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path is not None else default_storage_path()
        self._cached: GraphSettings | None = None
        self._listeners: list[Callable[[GraphSettings], None]] = []

    @property
    def path(self) -> Path:
        return self._path

    def on_change(self, callback: Callable[[GraphSettings], None]) -> None:
        self._listeners.append(callback)

    def load(self) -> GraphSettings:
        """Return stored settings, or defaults if nothing valid is stored."""
        if self._cached is not None:
            return self._cached
        blob = self._read().get(SETTINGS_KEY)
        settings = GraphSettings()
        if isinstance(blob, dict):
            try:
                settings = GraphSettings.model_validate(blob)
            except PydanticValidationError as e:
                logger.warning("Ignoring invalid stored settings in %s: %s", self._path, e)
        self._cached = settings
        return settings

    def save(self, settings: GraphSettings) -> None:
        self._cached = settings
        self._write_key(SETTINGS_KEY, settings.model_dump(mode="json", by_alias=True))
        self._notify(settings)

    def clear(self) -> None:
        self._cached = None
        data = self._read()
        data.pop(SETTINGS_KEY, None)
        self._write(data)
        self._notify(GraphSettings())

    def load_history(self, max_items: int) -> QueryHistory:
        return QueryHistory.from_json(self._read().get(HISTORY_KEY), max_items=max_items)

    def save_history(self, history: QueryHistory) -> None:
        self._write_key(HISTORY_KEY, history.to_json())

    def _notify(self, settings: GraphSettings) -> None:
        for callback in self._listeners:
            callback(settings)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            # Corrupt storage falls back to defaults rather than blocking the CLI
            logger.warning("Cannot read %s, using defaults: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_key(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2))


def apply_env_overrides(settings: GraphSettings, environ: dict[str, str] | None = None) -> GraphSettings:
    """Return a copy of *settings* with ``OPTIGRAPH_*`` variables applied."""
    env = os.environ if environ is None else environ
    updates: dict[str, Any] = {}
    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            updates[field_name] = value
    return merge_settings(settings, updates)


def merge_settings(settings: GraphSettings, updates: dict[str, Any]) -> GraphSettings:
    """Validate *updates* on top of *settings*; None values are ignored."""
    data = settings.model_dump()
    data.update({k: v for k, v in updates.items() if v is not None})
    if isinstance(data.get("auth_mode"), str):
        data["auth_mode"] = AuthMode(data["auth_mode"])
    return GraphSettings.model_validate(data)
