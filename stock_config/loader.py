"""
Settings loader (``stock_config.loader``).

Responsibility
--------------
Reads an optional YAML file into ``LedgerSettings``, applies environment
variable overrides on top, and computes a fingerprint for change
detection.  Runtime callers go through ``stock_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top level not a mapping, unknown keys, bad values  -> ``ValueError``.

Precedence (lowest to highest): dataclass defaults, YAML file, environment.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any, Mapping

import yaml
from sqlalchemy.engine import make_url

from stock_config.settings import LedgerSettings

CONFIG_PATH_ENV = "STOCK_LEDGER_CONFIG"

# Environment variable -> (field, parser)
_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Cannot parse boolean from {raw!r}")


def _parse_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"Cannot parse integer from {raw!r}") from None


ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "STOCK_DATABASE_URL": ("database_url", str),
    "STOCK_DATABASE_ECHO": ("database_echo", _parse_bool),
    "STOCK_MAX_CONFLICT_RETRIES": ("max_conflict_retries", _parse_int),
    "STOCK_TRANSFER_ROLLBACK_MODE": ("transfer_rollback_mode", str),
    "STOCK_LOG_LEVEL": ("log_level", str),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its top-level mapping.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_settings(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate keys of a raw settings mapping; unknown keys are rejected."""
    unknown = set(data) - LedgerSettings.field_names()
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(sorted(unknown))}")
    values = dict(data)
    if "default_code_category" in values:
        # YAML reads 1000 as an int
        values["default_code_category"] = str(values["default_code_category"])
    return values


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Settings values taken from the environment."""
    values: dict[str, Any] = {}
    for var, (name, parse) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is not None and raw != "":
            values[name] = parse(raw)
    return values


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Build LedgerSettings from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file.  Defaults to ``$STOCK_LEDGER_CONFIG`` when set.
        environ: Environment mapping.  Defaults to ``os.environ``.
    """
    environ = os.environ if environ is None else environ
    if path is None and environ.get(CONFIG_PATH_ENV):
        path = environ[CONFIG_PATH_ENV]

    values: dict[str, Any] = {}
    if path is not None:
        values.update(parse_settings(load_yaml_file(Path(path))))
    values.update(env_overrides(environ))
    return LedgerSettings(**values)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def settings_fingerprint(settings: LedgerSettings) -> str:
    """Checksum of the settings with the database password masked."""
    data = asdict(settings)
    data["database_url"] = make_url(settings.database_url).render_as_string(
        hide_password=True
    )
    return compute_checksum(data)
