#!/usr/bin/env python3
"""
PROBE MANAGER
-------------
ICMP echo probes owned by chat users, at most one live probe per user.

A Probe resolves its target and opens its ICMP socket when constructed, so an
invalid host fails before anything is registered. run() sends one echo
request per interval on a worker thread and reports through callbacks:
setup, every reply (duplicates flagged), finish with statistics.

ProbeManager owns the registry. Each registered probe carries a generation
number; a finish event only tears down the user's controls when no newer
generation has been registered in the meantime.
"""

import itertools
import os
import statistics
import threading
from dataclasses import dataclass, field
from enum import Enum
from html import escape
from typing import Callable, Dict, List, Optional

from icmplib import (
    ICMPError,
    ICMPLibError,
    ICMPRequest,
    ICMPv4Socket,
    ICMPv6Socket,
    TimeoutExceeded,
    is_hostname,
    is_ipv4_address,
    is_ipv6_address,
    resolve,
)

from .config import PingSettings
from .formatters import fmt_rtt
from .logging_config import get_logger
from .transport import Transport, TransportError

logger = get_logger(__name__)

STOP_LABEL = "stop"
ICMP_HEADER_BYTES = 28

_identifiers = itertools.count(1)


class ProbeError(Exception):
    """The probe could not be created (bad host, no ICMP socket)."""


class ProbeStatus(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class Packet:
    nbytes: int
    address: str
    seq: int
    rtt: float
    duplicate: bool = False


@dataclass
class Statistics:
    host: str
    address: str
    sent: int = 0
    received: int = 0
    rtts: List[float] = field(default_factory=list)

    @property
    def packet_loss(self) -> float:
        if not self.sent:
            return 0.0
        return (self.sent - self.received) / self.sent * 100

    @property
    def min_rtt(self) -> float:
        return min(self.rtts) if self.rtts else 0.0

    @property
    def avg_rtt(self) -> float:
        return statistics.fmean(self.rtts) if self.rtts else 0.0

    @property
    def max_rtt(self) -> float:
        return max(self.rtts) if self.rtts else 0.0

    @property
    def stddev_rtt(self) -> float:
        return statistics.pstdev(self.rtts) if self.rtts else 0.0


def _noop(*args) -> None:
    pass


class Probe:
    """
    One ICMP echo session against a single host.

    Args:
        host: Hostname or IP address
        settings: Packet size, interval, count and socket mode

    Raises:
        ProbeError: If the host does not resolve or the socket cannot be opened
    """

    def __init__(self, host: str, settings: Optional[PingSettings] = None):
        self.host = host
        self.settings = settings or PingSettings()
        self.size = self.settings.size
        self.status = ProbeStatus.STARTING
        self._stopped = threading.Event()
        self._id = (os.getpid() + next(_identifiers)) & 0xFFFF

        self.on_setup: Callable[["Probe"], None] = _noop
        self.on_recv: Callable[[Packet], None] = _noop
        self.on_duplicate: Callable[[Packet], None] = _noop
        self.on_finish: Callable[[Statistics], None] = _noop

        if not (is_hostname(host) or is_ipv4_address(host) or is_ipv6_address(host)):
            raise ProbeError(f"{host}: invalid address")
        try:
            self.address = resolve(host)[0] if is_hostname(host) else host
            socket_class = ICMPv6Socket if is_ipv6_address(self.address) else ICMPv4Socket
            self._sock = socket_class(privileged=self.settings.privileged)
        except (ICMPLibError, OSError) as e:
            raise ProbeError(f"{host}: {e}") from e
        self.stats = Statistics(host=host, address=self.address)

    def stop(self) -> None:
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def run(self) -> None:
        """Ping until stopped or until `count` requests were sent."""
        self.status = ProbeStatus.RUNNING
        try:
            self.on_setup(self)
            seq = 0
            count = self.settings.count
            while not self.stopped and (count is None or seq < count):
                self._ping_once(seq & 0xFFFF)
                seq += 1
        finally:
            self._sock.close()
            self.status = ProbeStatus.STOPPED
            self.on_finish(self.stats)

    def _ping_once(self, seq: int) -> None:
        request = ICMPRequest(destination=self.address, id=self._id, sequence=seq, payload_size=self.size)
        try:
            self._sock.send(request)
        except ICMPLibError as e:
            logger.warning(f"[ping] [{self.host}] send failed: {e}")
            self._stopped.wait(self.settings.interval)
            return
        self.stats.sent += 1

        # replies are collected until the next request is due; later ones are dropped
        answered = False
        deadline = request.time + self.settings.interval
        remaining = self.settings.interval
        while not self.stopped and remaining > 0:
            try:
                reply = self._sock.receive(request, remaining)
            except TimeoutExceeded:
                return
            except ICMPLibError as e:
                logger.error(f"[ping] [{self.host}] receive failed: {e}")
                self.stop()
                return
            remaining = deadline - reply.time
            try:
                reply.raise_for_status()
            except ICMPError as e:
                logger.debug(f"[ping] [{self.host}] icmp_seq={seq}: {e}")
                continue
            rtt = reply.time - request.time
            packet = Packet(nbytes=reply.bytes_received, address=reply.source, seq=seq, rtt=rtt, duplicate=answered)
            if answered:
                self.on_duplicate(packet)
            else:
                answered = True
                self.stats.received += 1
                self.stats.rtts.append(rtt)
                self.on_recv(packet)
            remaining = deadline - reply.time
        if not self.stopped and remaining > 0:
            self._stopped.wait(remaining)


@dataclass
class ProbeSession:
    owner: int
    host: str
    probe: Probe
    generation: int
    thread: Optional[threading.Thread] = None

    @property
    def status(self) -> ProbeStatus:
        return self.probe.status


class ProbeManager:
    """
    Registry of live probes, one per user.

    Args:
        transport: Where probe events are delivered
        settings: Probe settings for every new probe
        probe_factory: Callable(host, settings) -> Probe, replaced in tests
    """

    def __init__(self, transport: Transport, settings: Optional[PingSettings] = None,
                 probe_factory: Callable[[str, PingSettings], Probe] = Probe):
        self.transport = transport
        self.settings = settings or PingSettings()
        self.probe_factory = probe_factory
        self._lock = threading.Lock()
        self._user_locks: Dict[int, threading.Lock] = {}
        self._sessions: Dict[int, ProbeSession] = {}
        self._generations = itertools.count(1)

    def _user_lock(self, uid: int) -> threading.Lock:
        with self._lock:
            return self._user_locks.setdefault(uid, threading.Lock())

    def start(self, uid: int, host: str) -> ProbeSession:
        """
        Replace the user's probe with a new one against `host`.

        Raises:
            ProbeError: If the probe cannot be created; nothing is registered
        """
        with self._user_lock(uid):
            self._stop(uid)
            logger.debug(f"[ping] [{uid}] starting {host}")
            try:
                probe = self.probe_factory(host, self.settings)
            except ProbeError as e:
                logger.error(f"[ping] [{uid}] [{host}] {e}")
                raise
            with self._lock:
                session = ProbeSession(owner=uid, host=host, probe=probe, generation=next(self._generations))
                self._sessions[uid] = session
            self._wire(session)
            session.thread = threading.Thread(
                target=probe.run, name=f"probe-{uid}-{session.generation}", daemon=True
            )
            session.thread.start()
            return session

    def stop(self, uid: int) -> bool:
        """Stop and deregister the user's probe; False when there was none."""
        with self._user_lock(uid):
            return self._stop(uid)

    def _stop(self, uid: int) -> bool:
        with self._lock:
            session = self._sessions.pop(uid, None)
        if session is None:
            return False
        logger.debug(f"[ping] [{uid}] stopping {session.host} ({session.status.value})")
        if session.status != ProbeStatus.STOPPED:
            session.probe.stop()
        return True

    def forget(self, uid: int) -> None:
        """Stop the user's probe and drop the per-user lock of a deauthorized user."""
        self.stop(uid)
        with self._lock:
            self._user_locks.pop(uid, None)

    def stop_all(self) -> None:
        for uid in list(self.active_users()):
            self.stop(uid)

    def get(self, uid: int) -> Optional[ProbeSession]:
        with self._lock:
            return self._sessions.get(uid)

    def current_generation(self, uid: int) -> Optional[int]:
        with self._lock:
            session = self._sessions.get(uid)
            return session.generation if session else None

    def active_users(self) -> List[int]:
        with self._lock:
            return list(self._sessions)

    # event delivery

    def _wire(self, session: ProbeSession) -> None:
        uid, generation, probe = session.owner, session.generation, session.probe
        probe.on_setup = lambda p: self._on_setup(uid, p)
        probe.on_recv = lambda pkt: self._deliver(uid, self.transport.send_text, format_packet(pkt))
        probe.on_duplicate = lambda pkt: self._deliver(uid, self.transport.send_text, format_packet(pkt))
        probe.on_finish = lambda stats: self._on_finish(uid, generation, stats)

    def _deliver(self, uid: int, send: Callable, *args) -> None:
        try:
            send(uid, *args)
        except TransportError as e:
            logger.error(f"[ping] [{uid}] delivery failed: {e}")

    def _on_setup(self, uid: int, probe: Probe) -> None:
        text = (f"<pre>PING {escape(probe.host)} ({escape(probe.address)}) "
                f"{probe.size}({probe.size + ICMP_HEADER_BYTES}) bytes of data.</pre>")
        self._deliver(uid, self.transport.send_text_with_controls, text, [STOP_LABEL])

    def _on_finish(self, uid: int, generation: int, stats: Statistics) -> None:
        with self._lock:
            session = self._sessions.get(uid)
            if session is not None and session.generation == generation:
                # natural completion
                del self._sessions[uid]
                session = None
            replaced = session is not None
        text = format_statistics(stats)
        if replaced:
            self._deliver(uid, self.transport.send_text, text)
        else:
            self._deliver(uid, self.transport.send_text_remove_controls, text)


def format_packet(packet: Packet) -> str:
    dup = " (DUP!)" if packet.duplicate else ""
    return (f"<pre>{packet.nbytes} bytes from {escape(packet.address)}: "
            f"icmp_seq={packet.seq} time={fmt_rtt(packet.rtt)}{dup}</pre>")


def format_statistics(stats: Statistics) -> str:
    return (
        f"<pre>{escape(stats.host)} ({escape(stats.address)}) stats:\n"
        f"{stats.sent} sent, {stats.received} received, {stats.packet_loss:.4g}% loss\n"
        f"rtt min/avg/max/stddev:\n"
        f"{fmt_rtt(stats.min_rtt)}/{fmt_rtt(stats.avg_rtt)}/{fmt_rtt(stats.max_rtt)}/{fmt_rtt(stats.stddev_rtt)}</pre>"
    )
