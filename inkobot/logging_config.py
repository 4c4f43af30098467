#!/usr/bin/env python3
"""
Centralized logging configuration for inkobot
---------------------------------------------

All modules obtain their logger through get_logger(). API request/response
traces go to a dedicated "inkobot.api" logger so they can be turned up
independently with DEBUG_API_CALLS.
"""

import os
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'

_configured = False


def configure_logging(debug: bool = False, level_name: Optional[str] = None) -> None:
    """
    Configure root logging once.

    Args:
        debug: Force DEBUG level (config file `debug: true`)
        level_name: Explicit level name, defaults to the LOG_LEVEL environment variable
    """
    global _configured

    level_name = (level_name or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_level = logging.DEBUG if debug else getattr(logging, level_name, logging.INFO)

    if not _configured:
        logging.basicConfig(level=log_level, format=LOG_FORMAT)
        _configured = True
    else:
        logging.getLogger().setLevel(log_level)

    api_debug = os.environ.get("DEBUG_API_CALLS", "false").lower() in ("true", "1", "yes")
    get_api_logger().setLevel(logging.DEBUG if (api_debug or debug) else log_level)

    # python-telegram-bot and httpx are chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)


def get_api_logger() -> logging.Logger:
    """Return the logger used for remote API traces."""
    return logging.getLogger("inkobot.api")
