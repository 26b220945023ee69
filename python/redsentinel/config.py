"""Client configuration loaded from a YAML file.

The file is optional. Recognised keys::

    host: 10.0.0.5
    port: 26379
    timeout: 2.5

Unknown keys are ignored so one file can be shared with other tools.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .protocol import DEFAULT_PORT


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/redsentinel/sentinel.yaml"


@dataclass
class SentinelConfig:
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    timeout: float | None = None


def default_config_path() -> Path:
    """Default config path: ~/.config/redsentinel/sentinel.yaml"""
    return Path(os.path.expanduser(DEFAULT_CONFIG_PATH))


def parse_config(text: str) -> SentinelConfig:
    """Parse YAML text into a SentinelConfig.

    Raises ValueError if the document is not a mapping or a value has
    the wrong type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in sentinel config: {exc}") from exc

    if data is None:
        return SentinelConfig()
    if not isinstance(data, dict):
        raise ValueError("Sentinel config must be a mapping")

    config = SentinelConfig()
    if "host" in data:
        if not isinstance(data["host"], str) or not data["host"]:
            raise ValueError(f"host must be a non-empty string, got {data['host']!r}")
        config.host = data["host"]
    if "port" in data:
        port = data["port"]
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
            raise ValueError(f"port must be an integer between 1 and 65535, got {port!r}")
        config.port = port
    if "timeout" in data and data["timeout"] is not None:
        timeout = data["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"timeout must be a positive number, got {timeout!r}")
        config.timeout = float(timeout)
    return config


def load_config(path: str | Path | None = None) -> SentinelConfig:
    """Load configuration from ``path`` (or the default location).

    A missing file yields the defaults.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.is_file():
        logger.debug("No sentinel config at %s, using defaults", config_path)
        return SentinelConfig()
    logger.debug("Loading sentinel config from %s", config_path)
    return parse_config(config_path.read_text(encoding="utf-8"))
