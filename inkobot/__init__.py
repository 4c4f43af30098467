"""inkobot - Telegram front-end for InkoTools switch inspection, search and ping."""

__version__ = "0.1.0"
