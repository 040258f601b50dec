"""
Logging setup for the CLI and the API process.

`config/logging.yaml` holds the handler/formatter layout; the level comes from settings
(`HERITAGETRAIL_LOG_LEVEL`) or an explicit override such as the CLI `--verbose` flag.
"""

from __future__ import annotations

import copy
import logging.config

from heritagetrail.config.settings import get_logging_config, get_settings

PACKAGE_LOGGER = "heritagetrail"


def configure_logging(level: str | None = None) -> str:
    """Apply the packaged dictConfig and return the effective level name."""
    effective = (level or get_settings().app.log_level).upper()
    # get_logging_config() is cached; never mutate the shared dict.
    config = copy.deepcopy(get_logging_config())

    config.setdefault("root", {})["level"] = effective
    config.setdefault("loggers", {}).setdefault(PACKAGE_LOGGER, {})["level"] = effective
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = effective

    logging.config.dictConfig(config)
    return effective
