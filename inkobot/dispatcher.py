#!/usr/bin/env python3
"""
Mode Dispatcher for inkobot
---------------------------

Top-level router. For every inbound event it:

1. applies an explicit mode switch command (/raw, /search, ...),
2. routes the remaining text to the handler of the user's current mode,
3. hands the HandlerResult to the transport (send, or edit for callbacks).

Inline button presses restore the mode encoded in the button before the
handler runs, so old buttons keep working whatever the user typed since.
Nothing raised by a handler escapes the dispatcher.
"""

from dataclasses import dataclass
from html import escape
from typing import Callable, Dict, Optional, Tuple

from .api_client import InkoToolsClient
from .callbacks import Action, CallbackError, parse_callback
from .config import ConfigStore
from .formatters import fmt_err
from .handlers import (
    AdminHandler,
    BaseHandler,
    HandlerContext,
    HandlerResult,
    PingHandler,
    RawHandler,
    ReportHandler,
    SearchHandler,
)
from .logging_config import get_logger
from .pipeline import ReportPipeline
from .probe import ProbeManager
from .sessions import Mode, SessionStore
from .transport import MessageRef, Transport, TransportError
from .utils import IPNormalizer, split_args

logger = get_logger(__name__)

HELP_USER = """
<b>Available commands:</b>
/help - print this help
/raw [args] - switch to raw command mode (default)
/report [args] - switch to feedback mode
/search [args] - switch to search mode
/ping [args] - switch to ping mode

<code>args</code> - optional commands, which can be executed immediately, like you are already in this mode.

<b>Raw mode (default)</b>
In this mode bot try to parse raw commands:

<code>IP</code> - depending on <b><i>IP</i></b>, get switch summary or get client ip address summary (ip, mask, gateway, prefix)

<code>IP PORT</code> - get short switch and short port summary with additional callback buttons:

<code>full/short</code> - switch between full and short port summary
<code>refresh</code> - update information in the same message
<code>clear</code> - clear port counters and refresh
<code>repeat</code> - send new message with updated information

<b><i>IP</i></b> can be in short or full format (e.g. <code>59.75</code> and <code>192.168.59.75</code> are equal)
For client's public ip you must specify address in full format.

<b>Report mode</b>
In this mode you can send bug reports or suggestions.
All messages will be redirected to special reports channel. You can also send screenshots or other media.

<b>Search mode</b>
In this mode you can search switches by mac, model or location.
Results will be paginated. Use callback buttons to navigate between pages: first, previous, next, last.

<b>Ping mode</b>
In this mode you can ping different hosts.
Only one host at time. If you send a new host, previous pinger will be stopped.
"""

MODE_COMMANDS = {
    "raw": Mode.RAW,
    "report": Mode.REPORT,
    "search": Mode.SEARCH,
    "ping": Mode.PING,
    "admin": Mode.ADMIN,
}


@dataclass
class InboundMessage:
    uid: int
    text: str = ""
    message_ref: Optional[MessageRef] = None
    sender_name: str = ""
    has_attachment: bool = False


@dataclass
class InboundCallback:
    uid: int
    data: str
    message_ref: Optional[MessageRef] = None


def parse_command(text: str) -> Tuple[Optional[str], str]:
    """
    Split "/cmd[@bot] args" into ("cmd", "args").

    Returns:
        (None, text) when the text is not a command
    """
    if not text.startswith("/"):
        return None, text
    first, args = split_args(text)
    return first[1:].split("@", 1)[0].lower(), args


class Dispatcher:
    """
    Routes inbound events to mode handlers.

    Args:
        config_store: Source of the admin uid and report channel
        sessions: Per-user mode store
        handlers: Handler per mode; raw is the fallback
        transport: Where results are delivered
        probes: Probe manager, stopped on shutdown
    """

    def __init__(self, config_store: ConfigStore, sessions: SessionStore,
                 handlers: Dict[Mode, BaseHandler], transport: Transport,
                 probes: Optional[ProbeManager] = None):
        self.config_store = config_store
        self.sessions = sessions
        self.handlers = handlers
        self.transport = transport
        self.probes = probes

    @classmethod
    def from_config(cls, config_store: ConfigStore, transport: Transport,
                    client: Optional[InkoToolsClient] = None,
                    probes: Optional[ProbeManager] = None) -> "Dispatcher":
        """Wire the session store, API client, pipeline, probe manager and handlers."""
        config = config_store.config
        client = client or InkoToolsClient(config.inkotools_api_url)
        probes = probes or ProbeManager(transport, config.ping)
        normalizer = IPNormalizer(config.switch_networks, config.short_ip_prefix)
        sessions = SessionStore(config.session_users())
        handlers: Dict[Mode, BaseHandler] = {
            Mode.RAW: RawHandler(client, ReportPipeline(client), normalizer),
            Mode.SEARCH: SearchHandler(client, config.search_per_page),
            Mode.REPORT: ReportHandler(transport, lambda: config_store.config.report_channel),
            Mode.PING: PingHandler(probes, normalizer),
            Mode.ADMIN: AdminHandler(config_store, sessions, transport, probes),
        }
        return cls(config_store, sessions, handlers, transport, probes)

    @property
    def admin(self) -> int:
        return self.config_store.config.admin

    def is_authorized(self, uid: int) -> bool:
        return uid == self.admin or self.sessions.is_authorized(uid)

    # messages

    def handle_message(self, message: InboundMessage) -> None:
        uid = message.uid
        cmd, args = parse_command(message.text)
        if not self.is_authorized(uid):
            if cmd == "start":
                self._new_user(message)
            else:
                logger.debug(f"[message] unauthorized {uid}: {message.text!r}")
            return

        logger.info(f"[message] [{self.sessions.name(uid)}] {message.text}")
        result = self._process_message(message, cmd, args)
        self._send(uid, result)

    def _process_message(self, message: InboundMessage, cmd: Optional[str], args: str) -> HandlerResult:
        uid = message.uid
        text = message.text if cmd is None else args

        if cmd in ("help", "start"):
            return HandlerResult(HELP_USER)
        if cmd == "admin" and uid != self.admin:
            return HandlerResult(fmt_err("You have no permissions to work in this mode."))
        if cmd in MODE_COMMANDS:
            self.sessions.set_mode(uid, MODE_COMMANDS[cmd])
        elif cmd is not None:
            return HandlerResult(fmt_err("Unknown command."))

        mode = self.sessions.get_mode(uid)
        if mode == Mode.ADMIN and uid != self.admin:
            # admin changed by a reload
            mode = Mode.RAW
            self.sessions.set_mode(uid, mode)
        context = HandlerContext(
            uid=uid,
            name=self.sessions.name(uid),
            message_ref=message.message_ref,
            has_attachment=message.has_attachment,
        )
        return self._run(self._handler(mode).handle, text, context)

    # callbacks

    def handle_callback(self, callback: InboundCallback) -> None:
        uid = callback.uid
        if not self.is_authorized(uid):
            logger.debug(f"[callback] unauthorized {uid}: {callback.data!r}")
            return
        logger.info(f"[callback] [{self.sessions.name(uid)}] {callback.data}")
        try:
            mode, action, command = parse_callback(callback.data)
        except CallbackError as e:
            logger.warning(f"[callback] {e}")
            return

        # restore mode if it was changed by another command
        self.sessions.set_mode(uid, mode)
        context = HandlerContext(
            uid=uid,
            name=self.sessions.name(uid),
            message_ref=callback.message_ref,
        )
        result = self._run(self._handler(mode).handle_callback, command, context)
        if action == Action.EDIT and callback.message_ref is not None:
            self._edit(callback.message_ref, result)
        else:
            self._send(uid, result)

    # helpers

    def _handler(self, mode: Mode) -> BaseHandler:
        return self.handlers.get(mode) or self.handlers[Mode.RAW]

    def _run(self, handle: Callable[[str, HandlerContext], HandlerResult],
             text: str, context: HandlerContext) -> HandlerResult:
        try:
            return handle(text, context)
        except Exception as e:
            logger.error(f"[dispatcher] handler failed for {context.uid}: {e}", exc_info=True)
            return HandlerResult(fmt_err("Internal error"))

    def _send(self, uid: int, result: HandlerResult) -> None:
        if not result.text:
            return
        try:
            if result.keyboard:
                self.transport.send_text_with_keyboard(uid, result.text, result.keyboard)
            else:
                self.transport.send_text(uid, result.text)
        except TransportError as e:
            logger.error(f"[send] [{uid}] {e}")

    def _edit(self, message_ref: MessageRef, result: HandlerResult) -> None:
        if not result.text:
            return
        try:
            if result.keyboard:
                self.transport.edit_text_with_keyboard(message_ref, result.text, result.keyboard)
            else:
                self.transport.edit_text(message_ref, result.text)
        except TransportError as e:
            logger.error(f"[edit] [{message_ref.chat_id}] {e}")

    def _new_user(self, message: InboundMessage) -> None:
        uid = message.uid
        name = escape(message.sender_name or str(uid))
        logger.info(f"[user] {uid} ({message.sender_name}) requests authorization")
        try:
            self.transport.send_text(
                self.admin,
                f"User <a href=\"tg://user?id={uid}\">{name}</a> "
                f"requests authorization:\nid: <code>{uid}</code>",
            )
            self.transport.send_text(uid, "Your request is accepted. Waiting confirmation from admin.")
        except TransportError as e:
            logger.error(f"[user] authorization request of {uid} failed: {e}")
