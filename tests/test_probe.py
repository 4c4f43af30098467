import threading
import time

import pytest

from inkobot.config import PingSettings
from inkobot.probe import (
    STOP_LABEL,
    Packet,
    ProbeError,
    ProbeManager,
    Statistics,
    format_packet,
    format_statistics,
)

from .conftest import USER, FakeProbe, RecordingTransport


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class SetupOnlyProbe(FakeProbe):
    """Announces itself and returns; finish events are driven by the test."""

    def run(self):
        self.on_setup(self)


def failing_factory(host, settings):
    raise ProbeError(f"{host}: cannot resolve")


@pytest.fixture
def manager(transport):
    return ProbeManager(transport, PingSettings(), probe_factory=FakeProbe)


def test_start_registers_and_announces(manager, transport):
    session = manager.start(USER, "10.0.0.1")
    assert manager.get(USER) is session
    assert manager.active_users() == [USER]
    assert wait_for(lambda: "send_text_with_controls" in transport.names())
    name, uid, text, labels = transport.calls[0]
    assert uid == USER
    assert text == "<pre>PING 10.0.0.1 (10.0.0.1) 56(84) bytes of data.</pre>"
    assert labels == [STOP_LABEL]


def test_stop_removes_controls(manager, transport):
    session = manager.start(USER, "10.0.0.1")
    assert wait_for(lambda: "send_text_with_controls" in transport.names())
    assert manager.stop(USER)
    assert manager.get(USER) is None
    assert wait_for(session.probe.finished.is_set)
    assert transport.names()[-1] == "send_text_remove_controls"
    assert "stats" in transport.calls[-1][2]


def test_stop_without_probe_is_a_noop(manager, transport):
    assert not manager.stop(USER)
    assert transport.calls == []


def test_start_replaces_previous_probe(manager):
    first = manager.start(USER, "10.0.0.1")
    second = manager.start(USER, "10.0.0.2")
    assert first.probe.stopped
    assert not second.probe.stopped
    assert manager.get(USER) is second
    assert second.generation > first.generation


def test_construction_failure_registers_nothing(transport):
    manager = ProbeManager(transport, probe_factory=failing_factory)
    with pytest.raises(ProbeError):
        manager.start(USER, "no.such.host")
    assert manager.get(USER) is None
    assert transport.calls == []


def test_failed_replacement_still_stops_old_probe(transport):
    hosts = iter(["10.0.0.1", None])

    def factory(host, settings):
        if next(hosts) is None:
            raise ProbeError("bad host")
        return FakeProbe(host, settings)

    manager = ProbeManager(transport, probe_factory=factory)
    first = manager.start(USER, "10.0.0.1")
    with pytest.raises(ProbeError):
        manager.start(USER, "bad")
    assert first.probe.stopped
    assert manager.get(USER) is None


def test_finish_of_replaced_probe_keeps_controls():
    transport = RecordingTransport()
    manager = ProbeManager(transport, probe_factory=SetupOnlyProbe)
    old = manager.start(USER, "10.0.0.1")
    new = manager.start(USER, "10.0.0.2")
    old.probe.on_finish(Statistics(host="10.0.0.1", address="10.0.0.1"))
    assert transport.calls[-1][0] == "send_text"
    assert manager.get(USER) is new

    new.probe.on_finish(Statistics(host="10.0.0.2", address="10.0.0.2"))
    assert transport.calls[-1][0] == "send_text_remove_controls"
    assert manager.get(USER) is None


def test_replies_are_forwarded(manager, transport):
    session = manager.start(USER, "10.0.0.1")
    session.probe.on_recv(Packet(nbytes=64, address="10.0.0.1", seq=1, rtt=0.0123))
    session.probe.on_duplicate(Packet(nbytes=64, address="10.0.0.1", seq=1, rtt=0.0150, duplicate=True))
    texts = [c[2] for c in transport.calls if c[0] == "send_text"]
    assert "<pre>64 bytes from 10.0.0.1: icmp_seq=1 time=12.3ms</pre>" in texts
    assert any(t.endswith("(DUP!)</pre>") for t in texts)


def test_delivery_failures_do_not_propagate():
    manager = ProbeManager(RecordingTransport(fail=True), probe_factory=SetupOnlyProbe)
    session = manager.start(USER, "10.0.0.1")
    session.probe.on_finish(Statistics(host="10.0.0.1", address="10.0.0.1"))
    assert manager.get(USER) is None


def test_concurrent_start_stop_leaves_at_most_one_probe(manager):
    def worker(i):
        for j in range(20):
            if (i + j) % 3 == 0:
                manager.stop(USER)
            else:
                manager.start(USER, f"10.0.{i}.{j}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    current = manager.get(USER)
    live = [p for p in FakeProbe.instances if not p.stopped]
    if current is None:
        assert live == []
    else:
        assert live == [current.probe]


def test_stop_all(manager):
    manager.start(1, "10.0.0.1")
    manager.start(2, "10.0.0.2")
    manager.stop_all()
    assert manager.active_users() == []
    assert all(p.stopped for p in FakeProbe.instances)


def test_statistics():
    stats = Statistics(host="h", address="a", sent=4, received=3, rtts=[0.001, 0.002, 0.003])
    assert stats.packet_loss == 25.0
    assert stats.min_rtt == 0.001
    assert stats.max_rtt == 0.003
    assert stats.avg_rtt == pytest.approx(0.002)
    text = format_statistics(stats)
    assert "4 sent, 3 received, 25% loss" in text
    assert "1ms/2ms/3ms/" in text


def test_empty_statistics():
    stats = Statistics(host="h", address="a")
    assert stats.packet_loss == 0.0
    assert "0s/0s/0s/0s" in format_statistics(stats)


def test_format_packet():
    assert format_packet(Packet(64, "1.1.1.1", 3, 2.345)) == "<pre>64 bytes from 1.1.1.1: icmp_seq=3 time=2.35s</pre>"
