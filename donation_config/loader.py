"""
Settings Loader (``donation_config.loader``).

Loads a YAML settings file and parses it into a ``LedgerSettings``.  The
single public entry point for runtime settings is
``donation_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import yaml

from donation_config.schema import LedgerSettings

_INT_FIELDS = {
    "pool_size",
    "max_overflow",
    "pool_timeout",
    "lock_timeout_ms",
    "statement_timeout_ms",
    "submission_retry_attempts",
    "default_page_size",
    "max_page_size",
}
_NULLABLE_FIELDS = {"lock_timeout_ms", "statement_timeout_ms"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("1", "true", "yes", "on"):
        return True
    if isinstance(value, str) and value.lower() in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name}: cannot parse boolean from {value!r}")


def parse_int(name: str, value: Any) -> int | None:
    if value is None and name in _NULLABLE_FIELDS:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"{name}: expected an integer, got {value!r}")


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a ``LedgerSettings`` from a dict.

    Accepts either a flat mapping or one nested under a ``ledger`` key.
    """
    if "ledger" in data and isinstance(data["ledger"], dict):
        data = data["ledger"]

    known = {f.name for f in fields(LedgerSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, raw in data.items():
        if key in _INT_FIELDS:
            values[key] = parse_int(key, raw)
        elif key == "echo_sql":
            values[key] = parse_bool(key, raw)
        elif raw is None:
            continue
        else:
            values[key] = str(raw)
    if "database_url" not in values:
        raise ValueError("database_url is required")
    return LedgerSettings(**values)


def compute_checksum(settings: LedgerSettings) -> str:
    """
    Deterministic SHA-256 over the settings, with the database password
    masked so the checksum can be logged.
    """
    payload = asdict(settings)
    payload["database_url"] = mask_url(settings.database_url)
    canonical = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def mask_url(url: str) -> str:
    """Replace the password part of a database URL with ``***``."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    credentials, _, host = rest.rpartition("@")
    user, has_password, _ = credentials.partition(":")
    if not has_password:
        return url
    return f"{scheme}://{user}:***@{host}"
