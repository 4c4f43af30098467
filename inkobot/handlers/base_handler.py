#!/usr/bin/env python3
"""
Base Handler for inkobot
This module provides a base class for all mode handlers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from ..api_client import APIError
from ..callbacks import Keyboard
from ..formatters import fmt_err
from ..logging_config import get_logger
from ..sessions import Mode
from ..transport import MessageRef

logger = get_logger(__name__)


@dataclass
class HandlerResult:
    """Rendered reply; empty text means nothing is sent."""

    text: str = ""
    keyboard: Optional[Keyboard] = None


@dataclass
class HandlerContext:
    """Who is asking and which message triggered the handler."""

    uid: int
    name: str = ""
    message_ref: Optional[MessageRef] = None
    has_attachment: bool = False


class BaseHandler(ABC):
    """
    Base class for all mode handlers

    A handler receives the residual text of a message (the command word
    already stripped by the dispatcher) and returns a HandlerResult. Handlers
    never raise for expected failures; API errors become inline error blocks.
    """

    mode: Mode = Mode.RAW

    @abstractmethod
    def handle(self, text: str, context: HandlerContext) -> HandlerResult:
        """
        Handle a message in this handler's mode

        Args:
            text: Message text without the mode command
            context: Sender and message information

        Returns:
            HandlerResult with text and optional inline keyboard
        """
        pass

    def handle_callback(self, command: str, context: HandlerContext) -> HandlerResult:
        """Replay a command carried by an inline button; same as a message by default."""
        return self.handle(command, context)

    def _call_api(self, label: str, call: Callable, *args: Any) -> Tuple[Any, Optional[str]]:
        """
        Make an API call through the client, turning failures into error text.

        Args:
            label: Short name used in log lines
            call: Bound client method
            *args: Arguments for the call

        Returns:
            Tuple of (data, error) where exactly one is None
        """
        logger.debug(f"[{self.__class__.__name__}] API call: {label} {args}")
        try:
            return call(*args), None
        except APIError as e:
            logger.error(f"[{self.__class__.__name__}] {label} failed: {e}")
            return None, fmt_err(str(e))
