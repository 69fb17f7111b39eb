from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..errors import DataExplorerError
from ..services.coercion import CleaningOptions
from ..services.probability import ABRAMOWITZ_STEGUN, DEFAULT_CHART_INTERVALS
from ..services.store import DEFAULT_MAX_HISTORY, DEFAULT_SAMPLE_ROWS

"""Config loader.

Responsibilities:
- Load YAML config/explorer.yml (yaml.safe_load)
- Validate against contracts/config_schema.json (jsonschema)
- Apply defaults (max_history=5, sample_rows=100, cdf_method=abramowitz_stegun)
- DATAEXPLORER_HISTORY_PATH (environment / .env) overrides history_path
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "HISTORY_PATH_ENV",
    "SCHEMA_PATH",
    "ConfigError",
    "ExplorerConfig",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/explorer.yml")
HISTORY_PATH_ENV = "DATAEXPLORER_HISTORY_PATH"

# dataexplorer/config/loader.py -> dataexplorer/contracts
SCHEMA_PATH = Path(__file__).parent.parent / "contracts" / "config_schema.json"


class ConfigError(DataExplorerError):
    pass


@dataclass(frozen=True)
class ExplorerConfig:
    history_path: str
    max_history: int = DEFAULT_MAX_HISTORY
    sample_rows: int = DEFAULT_SAMPLE_ROWS
    cleaning: CleaningOptions = field(default_factory=CleaningOptions)
    cdf_method: str = ABRAMOWITZ_STEGUN
    chart_intervals: int = DEFAULT_CHART_INTERVALS


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or the config
            violates it (missing keys, wrong types, unknown keys)
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


def load_config(path: Path = DEFAULT_CONFIG_PATH, env: Mapping[str, str] | None = None) -> ExplorerConfig:
    if env is None:
        env = os.environ
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    probability = data.get("probability") or {}
    history_path = env.get(HISTORY_PATH_ENV) or data["history_path"]
    return ExplorerConfig(
        history_path=history_path,
        max_history=data.get("max_history", DEFAULT_MAX_HISTORY),
        sample_rows=data.get("sample_rows", DEFAULT_SAMPLE_ROWS),
        cleaning=CleaningOptions.from_dict(data.get("cleaning")),
        cdf_method=probability.get("cdf_method", ABRAMOWITZ_STEGUN),
        chart_intervals=probability.get("chart_intervals", DEFAULT_CHART_INTERVALS),
    )
