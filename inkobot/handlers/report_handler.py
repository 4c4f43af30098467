#!/usr/bin/env python3
"""
Report Mode Handler for inkobot
Forwards bug reports and suggestions, media included, to the reports channel.
"""

from typing import Callable

from ..logging_config import get_logger
from ..sessions import Mode
from ..transport import Transport, TransportError
from .base_handler import BaseHandler, HandlerContext, HandlerResult

logger = get_logger(__name__)

REPORT_USAGE = (
    "You are in report mode. "
    "Send message with your report, you can also attach screenshots or other media.\n"
    "To cancel and return to raw command mode, send /raw."
)


class ReportHandler(BaseHandler):
    """Handler for report mode"""

    mode = Mode.REPORT

    def __init__(self, transport: Transport, channel: Callable[[], int]):
        self.transport = transport
        self.channel = channel

    def handle(self, text: str, context: HandlerContext) -> HandlerResult:
        if (not text and not context.has_attachment) or context.message_ref is None:
            return HandlerResult(REPORT_USAGE)
        try:
            self.transport.send_forward(self.channel(), context.uid, context.message_ref)
            res = "Your report has been sent. "
        except TransportError as e:
            logger.error(f"[ReportHandler] {e}")
            res = "Your report failed. Contact admin to check logs. "
        return HandlerResult(res + "Send another message or return to raw command mode by sending /raw.")
