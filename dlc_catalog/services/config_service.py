"""
services/config_service.py – Persisted user settings (the Steam API key).

The configuration lives in ``config.json`` inside the application base
directory.  A missing or corrupt file is not an error: defaults are used and
the problem is logged.  Writing, on the other hand, raises ConfigError so the
caller can tell the user the key was not saved.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dlc_catalog.services.exceptions import ConfigError

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
CONFIG_FILENAME: str = "config.json"
API_KEY_FIELD: str = "steam_api_key"

# Base directory for config and cache files; overridable for packaged builds.
BASE_ENV_VAR: str = "DLC_CATALOG_HOME"


def base_path() -> Path:
    """Directory holding config and cache files (``$DLC_CATALOG_HOME`` or cwd)."""
    return Path(os.environ.get(BASE_ENV_VAR) or ".")


class ConfigService:
    """Read and write the Steam API key in ``config.json``."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or base_path() / CONFIG_FILENAME
        self._config: Dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get_api_key(self) -> Optional[str]:
        """Return the stored API key, or None when absent/blank."""
        key = self._config.get(API_KEY_FIELD)
        if isinstance(key, str) and key.strip():
            return key.strip()
        return None

    def has_api_key(self) -> bool:
        return self.get_api_key() is not None

    def set_api_key(self, api_key: str) -> None:
        """
        Persist *api_key*.

        Raises
        ------
        ConfigError if the file cannot be written.
        """
        self._config[API_KEY_FIELD] = api_key.strip()
        self._save()

    # ── Private helpers ───────────────────────────────────────────────────────

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            logger.info("No configuration file found at '%s', using defaults", self._path)
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Failed to load configuration from '%s', using defaults: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Configuration in '%s' is not a JSON object, using defaults", self._path)
            return {}
        logger.info("Configuration loaded successfully")
        return data

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._config, indent=2), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Failed to save configuration to '{self._path}': {exc}") from exc
        logger.info("Configuration saved successfully")
