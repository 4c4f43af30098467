import threading
from typing import Any, Dict, List, Optional

import pytest

from inkobot.config import BotConfig, ConfigStore, PingSettings, UserEntry
from inkobot.models import Multicast, Port, PortBandwidth, PortCounters, PortList, PortVlan, Switch
from inkobot.probe import ProbeStatus, Statistics
from inkobot.transport import MessageRef, Transport, TransportError

ADMIN = 1
USER = 100
SWITCH_IP = "192.168.59.75"


class RecordingTransport(Transport):
    def __init__(self, fail: bool = False):
        self.calls: List[tuple] = []
        self.fail = fail
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)
        if self.fail:
            raise TransportError("boom")

    def send_text(self, uid, text):
        self._record("send_text", uid, text)

    def send_text_with_keyboard(self, uid, text, keyboard):
        self._record("send_text_with_keyboard", uid, text, keyboard)

    def edit_text(self, message_ref, text):
        self._record("edit_text", message_ref, text)

    def edit_text_with_keyboard(self, message_ref, text, keyboard):
        self._record("edit_text_with_keyboard", message_ref, text, keyboard)

    def send_forward(self, channel, from_uid, message_ref):
        self._record("send_forward", channel, from_uid, message_ref)

    def send_text_with_controls(self, uid, text, labels):
        self._record("send_text_with_controls", uid, text, labels)

    def send_text_remove_controls(self, uid, text):
        self._record("send_text_remove_controls", uid, text)

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]


DEFAULTS: Dict[str, Any] = {
    "get_switch": Switch(ip=SWITCH_IP, location="Main st. 1", mac="00:11:22:33:44:55", model="DES-3200-28", status=True),
    "get_ports": [Port(port=5, type="100BASE-T", state=True, link=True, speed="100M/Full")],
    "get_bandwidth": PortBandwidth(rx=10000, tx=10000),
    "get_counters": PortCounters(rx_total=1024, tx_total=2048),
    "get_vlan": PortVlan(port=5, untagged=[100]),
    "get_port_list": PortList(access_ports=[1, 2, 3, 4, 5]),
    "get_acl": [],
    "get_multicast": Multicast(member=[5], source=[25]),
    "get_mac_table": [],
    "arp_by_ip": [],
    "arp_by_mac": [],
    "clear_counters": "Counters cleared",
}


class FakeClient:
    """Stands in for InkoToolsClient; values may be exceptions or callables."""

    def __init__(self, **responses):
        self.responses = dict(DEFAULTS)
        self.responses.update(responses)
        self.calls: List[tuple] = []

    def _answer(self, name, *args):
        self.calls.append((name,) + args)
        value = self.responses.get(name)
        if isinstance(value, Exception):
            raise value
        if callable(value) and not isinstance(value, type):
            value = value(*args)
            if isinstance(value, Exception):
                raise value
        return value

    def called(self, name) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    def get_switch(self, ip):
        return self._answer("get_switch", ip)

    def get_ports(self, ip, port):
        return self._answer("get_ports", ip, port)

    def get_bandwidth(self, ip, port):
        return self._answer("get_bandwidth", ip, port)

    def get_counters(self, ip, port):
        return self._answer("get_counters", ip, port)

    def clear_counters(self, ip, port):
        return self._answer("clear_counters", ip, port)

    def get_vlan(self, ip, port):
        return self._answer("get_vlan", ip, port)

    def get_port_list(self, ip):
        return self._answer("get_port_list", ip)

    def get_acl(self, ip, port):
        return self._answer("get_acl", ip, port)

    def get_multicast(self, ip):
        return self._answer("get_multicast", ip)

    def get_mac_table(self, ip, port):
        return self._answer("get_mac_table", ip, port)

    def arp_by_ip(self, ip):
        return self._answer("arp_by_ip", ip)

    def arp_by_mac(self, mac, src_sw_ip):
        return self._answer("arp_by_mac", mac, src_sw_ip)

    def search(self, keyword, page=1, per_page=4):
        return self._answer("search", keyword, page, per_page)

    def ipcalc(self, ip):
        return self._answer("ipcalc", ip)


class FakeProbe:
    """Probe double: runs until stopped, no sockets."""

    instances: List["FakeProbe"] = []

    def __init__(self, host: str, settings: Optional[PingSettings] = None):
        self.host = host
        self.address = host
        self.size = 56
        self.settings = settings
        self._stopped = threading.Event()
        self.finished = threading.Event()
        self.on_setup = lambda p: None
        self.on_recv = lambda pkt: None
        self.on_duplicate = lambda pkt: None
        self.on_finish = lambda stats: None
        FakeProbe.instances.append(self)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def status(self):
        return ProbeStatus.STOPPED if self.finished.is_set() else ProbeStatus.RUNNING

    def stop(self):
        self._stopped.set()

    def run(self):
        self.on_setup(self)
        self._stopped.wait(5)
        self.on_finish(Statistics(host=self.host, address=self.address))
        self.finished.set()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def bot_config():
    return BotConfig(
        bot_token="token",
        admin=ADMIN,
        report_channel=-500,
        users={USER: UserEntry(name="operator")},
        inkotools_api_url="http://api.local/",
    )


@pytest.fixture
def config_store(tmp_path, bot_config):
    store = ConfigStore(tmp_path / "config.yml", config=bot_config)
    store.save()
    return store


@pytest.fixture(autouse=True)
def reset_fake_probes():
    FakeProbe.instances = []
    yield
    for probe in FakeProbe.instances:
        probe.stop()


def message_ref(message_id: int = 10, chat_id: int = USER) -> MessageRef:
    return MessageRef(chat_id=chat_id, message_id=message_id)
