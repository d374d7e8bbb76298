from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}") from e

    # An empty file means "all defaults".
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {path} must be a mapping of sections")
    return data


def load_config(path: str | Path) -> AppConfig:
    """
    Load the instance/retry/query sections from a YAML file.

    Raises ConfigError listing every invalid field.
    """
    p = Path(path)
    data = _read_yaml_mapping(p)
    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        problems = [
            f"- {'.'.join(str(part) for part in item.get('loc', ())) or '<root>'}: "
            f"{item.get('msg', 'invalid value')}"
            for item in e.errors()
        ]
        raise ConfigError("\n".join([f"Invalid configuration in {p}:", *problems])) from e
