#!/usr/bin/env python3
"""
Ping Mode Handler for inkobot
One host at a time per user; a new host replaces the running probe.
"""

from ..formatters import fmt_err
from ..probe import STOP_LABEL, ProbeError, ProbeManager
from ..sessions import Mode
from ..utils import IPNormalizer
from .base_handler import BaseHandler, HandlerContext, HandlerResult

PING_USAGE = (
    "You are in ping mode. Send <b>host</b> to start pinging. "
    "Send <code>stop</code> to stop pinging."
)


class PingHandler(BaseHandler):
    """Handler for ping mode"""

    mode = Mode.PING

    def __init__(self, probes: ProbeManager, normalizer: IPNormalizer):
        self.probes = probes
        self.normalizer = normalizer

    def handle(self, text: str, context: HandlerContext) -> HandlerResult:
        if text == "":
            return HandlerResult(PING_USAGE)
        if text == STOP_LABEL:
            # the finish event reports the statistics
            self.probes.stop(context.uid)
            return HandlerResult()
        if self.normalizer.full_ip(text, is_switch=True):
            return HandlerResult(fmt_err(
                "Impossible to ping switch ip without violating network conception. "
                "Use /raw mode for availability checks."
            ))
        host = self.normalizer.full_ip(text) or text
        try:
            self.probes.start(context.uid, host)
        except ProbeError as e:
            return HandlerResult(fmt_err(str(e)))
        return HandlerResult()
