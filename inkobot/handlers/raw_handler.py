#!/usr/bin/env python3
"""
Raw Mode Handler for inkobot

Parses raw commands:

    IP                    switch summary, or IP calculator for client addresses
    IP PORT [full] [clear]  port report with inline controls
"""

from ..api_client import APIError, InkoToolsClient
from ..callbacks import Action, Keyboard, encode_callback
from ..formatters import fmt_err, format_ipcalc
from ..logging_config import get_logger
from ..pipeline import FULL, SHORT, ReportPipeline
from ..sessions import Mode
from ..utils import IPNormalizer, split_args
from .base_handler import BaseHandler, HandlerContext, HandlerResult

logger = get_logger(__name__)

VIEWS = (SHORT, FULL)


def wants_full(args: str) -> bool:
    """`full` anywhere in the args, or an abbreviation such as `f` or `fu`."""
    return "full" in args or (args != "" and "full".startswith(args))


def port_keyboard(ip: str, port: str, view: str) -> Keyboard:
    """
    Controls attached to a port report: toggle view, refresh, clear, repeat.
    """
    other = FULL if view == SHORT else SHORT

    def cb(action: Action, command: str) -> str:
        return encode_callback(Mode.RAW, action, command)

    return [
        [(other, cb(Action.EDIT, f"{ip} {port} {other}"))],
        [
            ("refresh", cb(Action.EDIT, f"{ip} {port} {view}")),
            ("clear", cb(Action.EDIT, f"{ip} {port} {view} clear")),
            ("repeat", cb(Action.SEND, f"{ip} {port} {view}")),
        ],
    ]


class RawHandler(BaseHandler):
    """Handler for the default raw command mode"""

    mode = Mode.RAW

    def __init__(self, client: InkoToolsClient, pipeline: ReportPipeline, normalizer: IPNormalizer):
        self.client = client
        self.pipeline = pipeline
        self.normalizer = normalizer

    def handle(self, text: str, context: HandlerContext) -> HandlerResult:
        if text == "":
            return HandlerResult("You are in raw command mode.")
        cmd, args = split_args(text)
        ip = self.normalizer.full_ip(cmd)
        if not ip:
            logger.error(f"[RawHandler] Failed to parse: {text}")
            return HandlerResult(fmt_err("Failed to parse raw input."))
        if self.normalizer.is_switch(ip):
            port, rest = split_args(args)
            return self.switch(ip, port, rest)
        return self.ipcalc(ip)

    def switch(self, ip: str, port: str, args: str) -> HandlerResult:
        logger.debug(f"[RawHandler] ip: {ip}, port: {port}, args: '{args}'")
        if not port:
            return HandlerResult(self.pipeline.switch_summary(ip, FULL))

        if "clear" in args:
            try:
                logger.debug(f"[RawHandler] Clear result: {self.client.clear_counters(ip, port)}")
            except APIError as e:
                logger.error(f"[RawHandler] Clear {ip} {port} failed: {e}")

        view = FULL if wants_full(args) else SHORT
        report = self.pipeline.build(ip, port, view)
        return HandlerResult(report.render(), port_keyboard(ip, port, view))

    def ipcalc(self, ip: str) -> HandlerResult:
        calc, error = self._call_api("ipcalc", self.client.ipcalc, ip)
        if error:
            return HandlerResult(error)
        return HandlerResult(format_ipcalc(calc))
