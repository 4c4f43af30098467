#!/usr/bin/env python3
"""
Transport interface
-------------------
What the dispatcher, handlers and probe manager need from the chat service.
The Telegram implementation lives in telegram_bot.py.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from .callbacks import Keyboard


class TransportError(Exception):
    """Sending, editing or forwarding a message failed."""


@dataclass
class MessageRef:
    """Reference to a message already delivered to a chat."""

    chat_id: int
    message_id: int
    # transport-specific markup currently attached to the message
    markup: Optional[Any] = None


class Transport(ABC):

    @abstractmethod
    def send_text(self, uid: int, text: str) -> None:
        pass

    @abstractmethod
    def send_text_with_keyboard(self, uid: int, text: str, keyboard: Keyboard) -> None:
        pass

    @abstractmethod
    def edit_text(self, message_ref: MessageRef, text: str) -> None:
        """Replace the text, keep the inline keyboard already attached."""
        pass

    @abstractmethod
    def edit_text_with_keyboard(self, message_ref: MessageRef, text: str, keyboard: Keyboard) -> None:
        pass

    @abstractmethod
    def send_forward(self, channel: int, from_uid: int, message_ref: MessageRef) -> None:
        pass

    @abstractmethod
    def send_text_with_controls(self, uid: int, text: str, labels: List[str]) -> None:
        """Send text and attach a persistent reply keyboard with `labels`."""
        pass

    @abstractmethod
    def send_text_remove_controls(self, uid: int, text: str) -> None:
        """Send text and remove the persistent reply keyboard."""
        pass
