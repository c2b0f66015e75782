from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import AnalysisConfig

"""Config loader.

Responsibilities:
- Load the YAML analysis config (default: config/analysis.yml)
- Validate it against the packaged JSON schema
- Apply defaults for every missing key
"""

__all__ = [
    "ConfigError",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "load_config_or_default",
    "resolve_config_path",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/analysis.yml")
CONFIG_ENV_VAR = "CSV_INSIGHT_CONFIG"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (wrong types, out of range values,
            unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_config(data: dict[str, Any]) -> AnalysisConfig:
    defaults = AnalysisConfig()
    sentinels = data.get("null_sentinels") or []
    return AnalysisConfig(
        numeric_threshold=float(data.get("numeric_threshold", defaults.numeric_threshold)),
        sample_size=data.get("sample_size", defaults.sample_size),
        most_common_limit=data.get("most_common_limit", defaults.most_common_limit),
        chunk_size=data.get("chunk_size", defaults.chunk_size),
        keep_na_strings=tuple(data.get("keep_na_strings") or ()),
        null_sentinels=frozenset(s.strip().upper() for s in sentinels),
        encoding=data.get("encoding", defaults.encoding),
    )


def load_config(path: Path) -> AnalysisConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return _build_config(data)


def resolve_config_path(path: Path | None = None) -> Path:
    """Explicit path, else $CSV_INSIGHT_CONFIG, else config/analysis.yml."""
    if path is not None:
        return path
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config_or_default(path: Path | None = None) -> AnalysisConfig:
    """load_config() when the file exists, defaults otherwise.

    An explicitly requested path that does not exist is still an error.
    """
    resolved = resolve_config_path(path)
    if path is None and not resolved.exists():
        return AnalysisConfig()
    return load_config(resolved)
