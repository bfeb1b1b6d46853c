"""
procurement_config -- single entrypoint for engine settings.

Responsibility:
    ``get_settings()`` is the only way runtime code obtains deployment
    settings.  No other component reads settings files or the
    ``PROCUREMENT_SETTINGS`` environment variable directly.

Architecture position:
    Configuration -- sits beside ``procurement_kernel`` and below
    ``procurement_services``.  The kernel never imports this package;
    the workflow layer passes the values it needs (local currency, URL)
    down explicitly.

Failure modes:
    - ``FileNotFoundError`` -- the resolved settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every call emits a ``PROCUREMENT_CONFIG_TRACE`` log entry naming the
    file the settings came from and the local currency in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from procurement_config.loader import load_settings
from procurement_config.schema import EngineSettings

_logger = logging.getLogger("procurement_kernel.config")

SETTINGS_ENV_VAR = "PROCUREMENT_SETTINGS"

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "defaults" / "settings.yaml"


def resolve_settings_path(path: Path | str | None = None) -> Path:
    """Explicit path, else ``$PROCUREMENT_SETTINGS``, else the packaged defaults."""
    if path is not None:
        return Path(path)
    env = os.environ.get(SETTINGS_ENV_VAR)
    if env:
        return Path(env)
    return _DEFAULT_SETTINGS_FILE


def get_settings(path: Path | str | None = None) -> EngineSettings:
    """The ONLY public settings entrypoint.

    Args:
        path: Override settings file.  Defaults to ``$PROCUREMENT_SETTINGS``
            or ``procurement_config/defaults/settings.yaml``.

    Returns:
        Frozen ``EngineSettings``.

    Raises:
        FileNotFoundError: If the settings file is missing.
        ValueError: If the file fails validation.
    """
    source = resolve_settings_path(path)
    settings = load_settings(source)

    _logger.info(
        "PROCUREMENT_CONFIG_TRACE",
        extra={
            "trace_type": "PROCUREMENT_CONFIG_TRACE",
            "settings_path": str(source),
            "local_currency": settings.local_currency,
            "money_decimal_places": settings.money_decimal_places,
        },
    )
    return settings


__all__ = [
    "EngineSettings",
    "SETTINGS_ENV_VAR",
    "get_settings",
    "resolve_settings_path",
]
