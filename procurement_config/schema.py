"""
EngineSettings schema.

Deployment settings for the procurement engine: where the store lives,
which currency is local, how loud the logs are.  Business configuration
(fiscal year, supplier and equipment lists) is NOT here; it is read at
runtime through ``procurement_kernel.domain.config.ConfigStore``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class EngineSettings:
    """Validated, immutable engine settings."""

    database_url: str = "sqlite:///:memory:"
    local_currency: str = "NPR"
    log_level: str = "INFO"
    money_decimal_places: int = 2
    pool_size: int = 10
    echo_sql: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.database_url, str) or not self.database_url.strip():
            raise ValueError("database_url must be a non-empty string")

        currency = str(self.local_currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValueError(f"local_currency must be a 3-letter code, got {self.local_currency!r}")
        object.__setattr__(self, "local_currency", currency)

        level = str(self.log_level or "").strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {self.log_level!r}")
        object.__setattr__(self, "log_level", level)

        if isinstance(self.money_decimal_places, bool) or not isinstance(self.money_decimal_places, int):
            raise ValueError("money_decimal_places must be an integer")
        if not 0 <= self.money_decimal_places <= 9:
            raise ValueError(
                f"money_decimal_places must be between 0 and 9, got {self.money_decimal_places}"
            )
        if isinstance(self.pool_size, bool) or not isinstance(self.pool_size, int) or self.pool_size < 1:
            raise ValueError(f"pool_size must be a positive integer, got {self.pool_size!r}")
        if not isinstance(self.echo_sql, bool):
            raise ValueError(f"echo_sql must be true or false, got {self.echo_sql!r}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)
