"""
Configuration (``stock_ledger.config``).

Responsibility
--------------
Builds the single frozen ``LedgerConfig`` the rest of the package is
constructed from.  Values are layered: built-in defaults, then an optional
YAML file, then ``STOCK_LEDGER_*`` environment variables.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or values of the wrong shape  -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

ENV_PREFIX = "STOCK_LEDGER_"


@dataclass(frozen=True)
class LedgerConfig:
    """Runtime settings for a ledger instance."""

    database_url: str = "sqlite:///stock_ledger.db"
    code_ttl_minutes: int = 15
    code_digits: int = 6
    adjustment_location: str = "ADJUST"
    signature_root: str = "signatures"
    ticket_sync_url: str | None = None
    ticket_sync_timeout: float = 10.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.code_ttl_minutes <= 0:
            raise ValueError("code_ttl_minutes must be positive")
        if not 4 <= self.code_digits <= 10:
            raise ValueError("code_digits must be between 4 and 10")
        if not self.adjustment_location:
            raise ValueError("adjustment_location must not be empty")


_FIELD_TYPES: dict[str, type] = {
    "database_url": str,
    "code_ttl_minutes": int,
    "code_digits": int,
    "adjustment_location": str,
    "signature_root": str,
    "ticket_sync_url": str,
    "ticket_sync_timeout": float,
    "log_level": str,
}


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    target = _FIELD_TYPES[key]
    try:
        return target(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for '{key}': {value!r}") from exc


def _apply(config: LedgerConfig, values: Mapping[str, Any], source: str) -> LedgerConfig:
    known = {f.name for f in fields(LedgerConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {source}: {', '.join(unknown)}")
    return replace(config, **{k: _coerce(k, v) for k, v in values.items()})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; an empty file yields an empty dict."""
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    # Allow the settings to live under a top-level "stock_ledger" key.
    if set(data) == {"stock_ledger"} and isinstance(data["stock_ledger"], dict):
        return data["stock_ledger"]
    return data


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> LedgerConfig:
    """
    Build a ``LedgerConfig`` from defaults, an optional YAML file and the
    environment.

    ``STOCK_LEDGER_CONFIG`` names the YAML file when ``path`` is not given.
    Any other ``STOCK_LEDGER_<FIELD>`` variable overrides that field.
    """
    env = os.environ if env is None else env
    config = LedgerConfig()

    config_path = path or env.get(f"{ENV_PREFIX}CONFIG")
    if config_path:
        config = _apply(config, load_yaml_file(Path(config_path)), str(config_path))

    overrides = {
        name[len(ENV_PREFIX):].lower(): value
        for name, value in env.items()
        if name.startswith(ENV_PREFIX) and name != f"{ENV_PREFIX}CONFIG"
    }
    if overrides:
        config = _apply(config, overrides, "environment")
    return config
