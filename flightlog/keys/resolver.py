"""
DJI API key resolution.

Logs from firmware V13+ are encrypted and need an API key to fetch their
keychain. The key can be provided via:
1. Environment variable: DJI_API_KEY
2. Config file in the app data directory: config.json
3. .env file in the working directory (development)
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import orjson
from dotenv import dotenv_values

from flightlog.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

API_KEY_ENV = "DJI_API_KEY"
CONFIG_FIELD = "dji_api_key"
CONFIG_FILE_NAME = "config.json"
PLACEHOLDER_KEY = "your_api_key_here"

_UNRESOLVED = object()


def _usable(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value == PLACEHOLDER_KEY:
        return None
    return value


class KeyResolver:
    """
    Resolves the API key once and caches it for the lifetime of the instance.

    A key saved after the first lookup is not seen until a new resolver is
    built (i.e. on the next application start).
    """

    def __init__(
        self,
        app_data_dir: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = Path(".env"),
    ):
        self.app_data_dir = Path(app_data_dir) if app_data_dir is not None else None
        self._environ = environ if environ is not None else os.environ
        self._dotenv_path = dotenv_path
        self._lock = threading.Lock()
        self._cached: Any = _UNRESOLVED

    @property
    def config_path(self) -> Optional[Path]:
        if self.app_data_dir is None:
            return None
        return self.app_data_dir / CONFIG_FILE_NAME

    def get_key(self) -> Optional[str]:
        if self._cached is not _UNRESOLVED:
            return self._cached
        with self._lock:
            if self._cached is _UNRESOLVED:
                self._cached = self._resolve()
            return self._cached

    def has_key(self) -> bool:
        return self.get_key() is not None

    def _resolve(self) -> Optional[str]:
        key = _usable(self._environ.get(API_KEY_ENV))
        if key:
            logger.info("Using DJI API key from environment variable")
            return key

        key = _usable(self._load_config().get(CONFIG_FIELD))
        if key:
            logger.info(f"Using DJI API key from {CONFIG_FILE_NAME}")
            return key

        if self._dotenv_path is not None and Path(self._dotenv_path).is_file():
            key = _usable(dotenv_values(self._dotenv_path).get(API_KEY_ENV))
            if key:
                logger.info("Using DJI API key from .env file")
                return key

        logger.warning("No DJI API key configured")
        return None

    def _load_config(self) -> Dict[str, Any]:
        path = self.config_path
        if path is None or not path.is_file():
            return {}
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: not a JSON object")
            return {}
        return data

    def save(self, api_key: str) -> Path:
        """Persist the key to config.json, keeping any other fields in the file."""
        path = self.config_path
        if path is None:
            raise ConfigurationError("No app data directory available to store the API key")

        config = self._load_config()
        config[CONFIG_FIELD] = api_key

        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".config-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(orjson.dumps(config, option=orjson.OPT_INDENT_2))
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Saved DJI API key to {CONFIG_FILE_NAME}")
        return path
