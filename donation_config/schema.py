"""
Settings schema (``donation_config.schema``).

Frozen dataclass describing everything the ledger reads at runtime.  Values
are validated in ``__post_init__`` so an invalid settings object cannot
exist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime settings for the donation ledger.

    Guarantees:
        - Pool and timeout values are non-negative, page sizes positive, and
          default_page_size <= max_page_size.
        - log_level is an upper-case stdlib level name.
    """

    database_url: str
    echo_sql: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    lock_timeout_ms: int | None = 5000
    statement_timeout_ms: int | None = 30000
    submission_retry_attempts: int = 3
    default_page_size: int = 20
    max_page_size: int = 100
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required")
        for name in ("pool_size", "max_overflow", "pool_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("lock_timeout_ms", "statement_timeout_ms"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive or null, got {value}")
        if self.submission_retry_attempts < 1:
            raise ValueError("submission_retry_attempts must be >= 1")
        if self.default_page_size < 1 or self.max_page_size < 1:
            raise ValueError("page sizes must be >= 1")
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) exceeds "
                f"max_page_size ({self.max_page_size})"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level.upper())
