"""
Store Configuration

Settings are resolved in three layers: built-in defaults, an optional
JSON config file, then SHORT_SILEO_* environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from common.exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config/short-sileo/config.json"
DEFAULT_DATA_DIR = Path.home() / ".local/share/short-sileo"

ENV_PREFIX = "SHORT_SILEO_"
ENV_FIELDS = ("data_dir", "tick_interval", "max_increment", "fetch_timeout", "open_links")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise InvalidConfigError(name, value, "expected a boolean")


def _to_positive_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidConfigError(name, value, "expected a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigError(name, value, "expected a number")
    if number <= 0:
        raise InvalidConfigError(name, value, "must be greater than zero")
    return number


def _to_path(name: str, value: Any) -> Path:
    if not isinstance(value, (str, os.PathLike)) or not str(value):
        raise InvalidConfigError(name, value, "expected a path")
    return Path(value).expanduser()


@dataclass
class StoreConfig:
    """Runtime settings for the store."""
    data_dir: Path = DEFAULT_DATA_DIR
    tick_interval: float = 0.3     # seconds between install progress steps
    max_increment: float = 40.0    # largest progress step, in percent
    fetch_timeout: float = 30.0
    open_links: bool = True
    log_file: Optional[Path] = None
    json_logs: bool = False

    def apply(self, values: Mapping[str, Any]) -> None:
        """Apply raw settings, validating each one."""
        known = {f.name for f in fields(self)}
        for name, value in values.items():
            if name not in known:
                logger.warning(f"Ignoring unknown config key: {name}")
                continue
            setattr(self, name, self._coerce(name, value))

    @staticmethod
    def _coerce(name: str, value: Any) -> Any:
        if name in ("tick_interval", "max_increment", "fetch_timeout"):
            return _to_positive_float(name, value)
        if name in ("open_links", "json_logs"):
            return _to_bool(name, value)
        if name == "data_dir":
            return _to_path(name, value)
        if name == "log_file":
            return None if value is None else _to_path(name, value)
        return value

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "StoreConfig":
        """
        Load configuration.

        Args:
            path: Config file (default ~/.config/short-sileo/config.json);
                a missing file is not an error
            environ: Environment mapping (default os.environ)

        Raises:
            InvalidConfigError: If the file is unreadable or a value is invalid.
        """
        config = cls()
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH

        if config_path.exists():
            try:
                data = json.loads(config_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise InvalidConfigError("config_file", config_path, str(e))
            if not isinstance(data, dict):
                raise InvalidConfigError("config_file", config_path, "expected a JSON object")
            config.apply(data)
            logger.debug(f"Loaded config from {config_path}")

        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for name in ENV_FIELDS:
            value = env.get(ENV_PREFIX + name.upper())
            if value is not None:
                overrides[name] = value
        config.apply(overrides)

        return config
