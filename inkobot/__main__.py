#!/usr/bin/env python3
"""Command line entry point: ``python -m inkobot [--config config.yml]``."""

import argparse
import sys
from typing import Optional, Sequence

from .config import ConfigError, ConfigStore, default_config_path
from .logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="inkobot", description="Telegram bot for InkoTools")
    parser.add_argument("--config", default=str(default_config_path()), help="Path to the YAML config file")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level_name=args.log_level)

    store = ConfigStore(args.config)
    try:
        config = store.load()
    except ConfigError as e:
        logger.error(f"Cannot start: {e}")
        return 1
    configure_logging(debug=config.debug, level_name=args.log_level)

    # python-telegram-bot is imported here so config errors are reported first
    from .telegram_bot import run

    run(store)
    return 0


if __name__ == "__main__":
    sys.exit(main())
