#!/usr/bin/env python3
"""
Admin Mode Handler for inkobot
User management and messaging, available to the admin only.
"""

from html import escape
from typing import Optional

from ..config import ConfigError, ConfigStore
from ..formatters import fmt_err
from ..logging_config import get_logger
from ..probe import ProbeManager
from ..sessions import Mode, SessionStore
from ..transport import Transport, TransportError
from ..utils import split_args
from .base_handler import BaseHandler, HandlerContext, HandlerResult

logger = get_logger(__name__)

HELP_ADMIN = """
<code>list</code> - list authorized users
<code>add ID [NAME]</code> - add user with id <b><i>ID</i></b> and optional mark with comment <b><i>NAME</i></b>
<code>del ID</code> - delete user with id <b><i>ID</i></b>
<code>send ID TEXT</code> - send message <b><i>TEXT</i></b> to user with id <b><i>ID</i></b>
<code>broadcast TEXT</code> - send broadcast message <b><i>TEXT</i></b>
<code>reload</code> - reload configuration from file
"""


def parse_uid(text: str) -> Optional[int]:
    try:
        uid = int(text)
    except ValueError:
        return None
    return uid or None


class AdminHandler(BaseHandler):
    """Handler for admin mode"""

    mode = Mode.ADMIN

    def __init__(self, config_store: ConfigStore, sessions: SessionStore, transport: Transport,
                 probes: Optional[ProbeManager] = None):
        self.config_store = config_store
        self.sessions = sessions
        self.transport = transport
        self.probes = probes

    def handle(self, text: str, context: HandlerContext) -> HandlerResult:
        cmd, arg = split_args(text)
        if cmd == "list":
            return HandlerResult(self.list_users())
        if cmd == "add":
            return HandlerResult(self.add_user(arg))
        if cmd == "del":
            return HandlerResult(self.del_user(arg))
        if cmd == "send":
            user, message = split_args(arg)
            return HandlerResult(self.send(user, message))
        if cmd == "broadcast":
            return HandlerResult(self.broadcast(arg))
        if cmd == "reload":
            return HandlerResult(self.reload())
        return HandlerResult(HELP_ADMIN)

    def list_users(self) -> str:
        lines = [
            f"<code>{uid}</code> - <a href=\"tg://user?id={uid}\">{escape(name)}</a>"
            for uid, name in self.sessions.users().items()
        ]
        return "\n".join(lines) or "No users"

    def add_user(self, args: str) -> str:
        u, name = split_args(args)
        uid = parse_uid(u)
        if uid is None:
            return fmt_err("Wrong uid")
        if self.sessions.is_authorized(uid):
            return "Nothing to do"
        try:
            self.config_store.add_user(uid, name)
        except ConfigError as e:
            return fmt_err(str(e))
        self.sessions.add(uid, name)
        logger.info(f"[user] {uid} ({name}) added")
        self._notify(uid, "You are added to authorized users list.")
        return f"User <code>{uid}</code> <b>{escape(name)}</b> added."

    def del_user(self, args: str) -> str:
        u, _ = split_args(args)
        uid = parse_uid(u)
        if uid is None:
            return fmt_err("Wrong uid")
        if not self.sessions.is_authorized(uid) or uid == self.config_store.config.admin:
            return "Nothing to do"
        name = self.sessions.name(uid)
        try:
            self.config_store.remove_user(uid)
        except ConfigError as e:
            return fmt_err(str(e))
        self.sessions.remove(uid)
        if self.probes is not None:
            self.probes.forget(uid)
        logger.info(f"[user] {uid} ({name}) removed")
        self._notify(uid, "You are removed from authorized users list.")
        return f"User <code>{uid}</code> <b>{escape(name)}</b> removed."

    def send(self, user: str, message: str) -> str:
        uid = parse_uid(user)
        if uid is None:
            return fmt_err("Wrong uid")
        try:
            self.transport.send_text(uid, message)
        except TransportError as e:
            return f"Message not sent: {escape(str(e))}"
        return "Message sent"

    def broadcast(self, message: str) -> str:
        if not message:
            return fmt_err("empty message")
        lines = []
        for uid in self.sessions.users():
            try:
                self.transport.send_text(uid, message)
                lines.append(f"{uid} OK")
            except TransportError as e:
                lines.append(f"{uid} failed: {escape(str(e))}")
        return "\n".join(lines)

    def reload(self) -> str:
        try:
            config = self.config_store.load()
        except ConfigError:
            return "Failed"
        users = config.session_users()
        dropped = set(self.sessions.users()) - set(users)
        self.sessions.sync(users)
        if self.probes is not None:
            for uid in dropped:
                self.probes.forget(uid)
        return "Config reloaded"

    def _notify(self, uid: int, message: str) -> None:
        try:
            self.transport.send_text(uid, message)
        except TransportError as e:
            logger.error(f"[user] notify {uid} failed: {e}")
