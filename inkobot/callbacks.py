#!/usr/bin/env python3
"""
CALLBACK CODEC
--------------
Inline buttons carry a plain-text value "<mode> <action> <command>". It is the
only state kept between rendering a button and pressing it, so decoding must
give back exactly what was encoded: only the first two spaces separate
fields, the command keeps any spaces of its own.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from .logging_config import get_logger
from .sessions import Mode

logger = get_logger(__name__)

# Telegram rejects callback_data longer than this
MAX_CALLBACK_BYTES = 64

Button = Tuple[str, str]
Keyboard = List[List[Button]]


class Action(str, Enum):
    SEND = "send"
    EDIT = "edit"


# modes whose handlers render inline buttons
CALLBACK_MODES = frozenset({Mode.RAW, Mode.SEARCH})


class CallbackError(ValueError):
    """Malformed callback value, or unknown mode/action."""


@dataclass(frozen=True)
class CallbackPayload:
    mode: str
    action: str
    command: str


def encode_callback(mode: str, action: str, command: str) -> str:
    mode = getattr(mode, "value", mode)
    action = getattr(action, "value", action)
    data = f"{mode} {action} {command}"
    if len(data.encode("utf-8")) > MAX_CALLBACK_BYTES:
        logger.warning(f"[callback] value exceeds {MAX_CALLBACK_BYTES} bytes: {data!r}")
    return data


def decode_callback(data: str) -> CallbackPayload:
    """
    Split a callback value into its three fields.

    Raises:
        CallbackError: If the value has fewer than two separators
    """
    parts = data.split(" ", 2)
    if len(parts) < 3:
        raise CallbackError(f"malformed callback: {data!r}")
    return CallbackPayload(*parts)


def parse_callback(data: str) -> Tuple[Mode, Action, str]:
    """
    Decode and validate a callback value against the closed vocabularies.

    Returns:
        Tuple of (mode, action, command)

    Raises:
        CallbackError: On malformed data, unknown mode or unknown action
    """
    payload = decode_callback(data)
    mode = Mode.parse(payload.mode)
    if mode not in CALLBACK_MODES:
        raise CallbackError(f"wrong mode: {payload.mode}")
    try:
        action = Action(payload.action)
    except ValueError:
        raise CallbackError(f"wrong action: {payload.action}") from None
    return mode, action, payload.command


def pagination_keyboard(keyword: str, page: int, total: int) -> Keyboard:
    """
    Build the search navigation row: first, previous, next, last.

    Args:
        keyword: Search keyword to repeat on every page
        page: Current page (1-based)
        total: Total number of pages

    Returns:
        A single-row keyboard, or an empty list when there is only one page
    """
    if total <= 1:
        return []

    def button(label: str, target: int) -> Button:
        return label, encode_callback(Mode.SEARCH, Action.EDIT, f"{keyword} {target}")

    row: List[Button] = []
    if page > 1:
        if page > 2:
            row.append(button("«", 1))
        row.append(button("‹", page - 1))
    if page < total:
        row.append(button("›", page + 1))
        if page < total - 1:
            row.append(button("»", total))
    return [row]
