"""
donation_config -- single public entrypoint for ledger settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads settings files or
    environment variables directly.

Architecture position:
    Configuration.  Sits beside ``donation_kernel`` and below
    ``donation_api``.  The kernel never imports from ``donation_config``;
    the API hands individual values to the kernel's engine initializer.

Environment overrides (applied after the YAML file):
    DONATION_LEDGER_SETTINGS      path to an alternate YAML file
    DONATION_LEDGER_DATABASE_URL  database URL (falls back to DATABASE_URL)
    DONATION_LEDGER_LOG_LEVEL     log level name

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or malformed values.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from donation_config.loader import compute_checksum, load_yaml_file, mask_url, parse_settings
from donation_config.schema import LedgerSettings

_logger = logging.getLogger("donation_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

ENV_SETTINGS_FILE = "DONATION_LEDGER_SETTINGS"
ENV_DATABASE_URL = "DONATION_LEDGER_DATABASE_URL"
ENV_DATABASE_URL_FALLBACK = "DATABASE_URL"
ENV_LOG_LEVEL = "DONATION_LEDGER_LOG_LEVEL"


def get_active_settings(
    settings_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """The ONLY public settings entrypoint.

    Guarantees:
        - The returned ``LedgerSettings`` passed validation.
        - A ``settings_loaded`` log entry carries the checksum and the
          masked database URL.
    """
    env = os.environ if environ is None else environ

    if settings_file is None:
        override = env.get(ENV_SETTINGS_FILE)
        settings_file = Path(override) if override else _DEFAULT_SETTINGS_FILE

    settings = parse_settings(load_yaml_file(settings_file))

    overrides: dict[str, str] = {}
    database_url = env.get(ENV_DATABASE_URL) or env.get(ENV_DATABASE_URL_FALLBACK)
    if database_url:
        overrides["database_url"] = database_url
    log_level = env.get(ENV_LOG_LEVEL)
    if log_level:
        overrides["log_level"] = log_level.upper()
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    _logger.info(
        "settings_loaded",
        extra={
            "settings_file": str(settings_file),
            "database_url": mask_url(settings.database_url),
            "checksum": compute_checksum(settings),
            "overrides": sorted(overrides),
        },
    )
    return settings


__all__ = ["LedgerSettings", "get_active_settings"]
