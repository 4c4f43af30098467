#!/usr/bin/env python3
"""
SESSION STORE
-------------
Holds one UserSession per authorized user. The store is the only owner of
the sessions map; callers get atomic operations and copies, never the map.
"""

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional


class Mode(str, Enum):
    RAW = "raw"
    REPORT = "report"
    SEARCH = "search"
    ADMIN = "admin"
    PING = "ping"

    @classmethod
    def parse(cls, value: str) -> Optional["Mode"]:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class UserSession:
    uid: int
    name: str = ""
    mode: Mode = Mode.RAW


class SessionStore:
    """Thread-safe map of uid -> UserSession."""

    def __init__(self, users: Optional[Dict[int, str]] = None):
        self._lock = threading.Lock()
        self._sessions: Dict[int, UserSession] = {}
        for uid, name in (users or {}).items():
            self._sessions[uid] = UserSession(uid=uid, name=name)

    def get_mode(self, uid: int) -> Mode:
        with self._lock:
            session = self._sessions.get(uid)
            return session.mode if session else Mode.RAW

    def set_mode(self, uid: int, mode: Mode) -> None:
        with self._lock:
            session = self._sessions.get(uid)
            if session is None:
                self._sessions[uid] = UserSession(uid=uid, mode=mode)
            else:
                session.mode = mode

    def add(self, uid: int, name: str = "") -> bool:
        """Add a session; returns False if uid already has one."""
        with self._lock:
            if uid in self._sessions:
                return False
            self._sessions[uid] = UserSession(uid=uid, name=name)
            return True

    def remove(self, uid: int) -> Optional[UserSession]:
        with self._lock:
            return self._sessions.pop(uid, None)

    def get(self, uid: int) -> Optional[UserSession]:
        with self._lock:
            session = self._sessions.get(uid)
            return replace(session) if session else None

    def is_authorized(self, uid: int) -> bool:
        with self._lock:
            return uid in self._sessions

    def name(self, uid: int) -> str:
        with self._lock:
            session = self._sessions.get(uid)
            return session.name if session else str(uid)

    def users(self) -> Dict[int, str]:
        with self._lock:
            return {uid: s.name for uid, s in self._sessions.items()}

    def sync(self, users: Dict[int, str]) -> None:
        """
        Replace the set of sessions with `users`, keeping the mode of every
        user that remains.
        """
        with self._lock:
            current = self._sessions
            self._sessions = {}
            for uid, name in users.items():
                mode = current[uid].mode if uid in current else Mode.RAW
                self._sessions[uid] = UserSession(uid=uid, name=name, mode=mode)
