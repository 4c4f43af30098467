#!/usr/bin/env python3
"""
PORT REPORT PIPELINE
--------------------
Builds a switch/port report from a chain of dependent remote calls.

The pipeline is an ordered list of stages. Fetch stages add a section to the
report and always continue; gate stages test a named predicate and stop the
whole remaining chain when it does not hold:

    switch,
    gate switch_available -> ports, bandwidth, counters (short style ends here)
    vlan, access_ports,
    gate is_access_port  -> acl, multicast,
    gate has_link        -> mac,
    gate has_mac_entries -> arp

Stages run strictly one after another because later stages depend on the
results of earlier ones. Fetch failures never abort the report: switch and
port failures are shown inline, other sections are left out and logged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, NamedTuple, Optional

from . import formatters as fmt
from .api_client import APIError, InkoToolsClient, ResponseDecodeError
from .logging_config import get_logger
from .models import (
    ARPEntry,
    Multicast,
    Port,
    PortACL,
    PortBandwidth,
    PortCounters,
    PortMac,
    PortVlan,
    Switch,
)

logger = get_logger(__name__)

SHORT = "short"
FULL = "full"
STYLES = (SHORT, FULL)


@dataclass
class PortReport:
    ip: str
    port: str
    style: str = SHORT
    switch: Optional[Switch] = None
    ports: List[Port] = field(default_factory=list)
    bandwidth: Optional[PortBandwidth] = None
    counters: Optional[PortCounters] = None
    vlan: Optional[PortVlan] = None
    access_ports: List[int] = field(default_factory=list)
    acl: Optional[List[PortACL]] = None
    multicast: Optional[Multicast] = None
    mac_table: Optional[List[PortMac]] = None
    arp_table: Optional[List[ARPEntry]] = None
    sections: List[str] = field(default_factory=list)
    executed: List[str] = field(default_factory=list)
    stopped_at: Optional[str] = None
    updated: Optional[datetime] = None

    @property
    def port_number(self) -> Optional[int]:
        return self.ports[0].port if self.ports else None

    def add(self, text: str) -> None:
        self.sections.append(text)

    def render(self) -> str:
        return "".join(self.sections) + fmt.updated_stamp(self.updated)


# gates

def switch_available(report: PortReport) -> bool:
    """A switch that answered with status down is not queried further; a failed lookup still is."""
    return report.switch is None or report.switch.status


def is_access_port(report: PortReport) -> bool:
    """ACL, multicast, MAC and ARP only make sense on access ports."""
    return report.port_number is not None and report.port_number in report.access_ports


def has_link(report: PortReport) -> bool:
    """MAC learning needs an active link on at least one sub-port."""
    return any(p.link for p in report.ports)


def has_mac_entries(report: PortReport) -> bool:
    return bool(report.mac_table)


def dedup_arp(entries: List[ARPEntry]) -> List[ARPEntry]:
    """Drop structurally equal entries, keeping first-seen order."""
    return list(dict.fromkeys(entries))


class Stage(NamedTuple):
    name: str
    run: Callable[[PortReport], bool]


class ReportPipeline:
    """
    Runs the report stages against an InkoToolsClient.

    Args:
        client: API client used for every stage
        clock: Returns the timestamp printed at the end of the report
    """

    def __init__(self, client: InkoToolsClient, clock: Callable[[], datetime] = datetime.now):
        self.client = client
        self.clock = clock

    def stages(self, style: str) -> List[Stage]:
        stages = [
            Stage("switch", self._switch),
            Stage("gate:switch_available", switch_available),
            Stage("ports", self._ports),
            Stage("bandwidth", self._bandwidth),
            Stage("counters", self._counters),
        ]
        if style != FULL:
            return stages
        return stages + [
            Stage("vlan", self._vlan),
            Stage("access_ports", self._access_ports),
            Stage("gate:access_port", is_access_port),
            Stage("acl", self._acl),
            Stage("multicast", self._multicast),
            Stage("gate:link_up", has_link),
            Stage("mac", self._mac),
            Stage("gate:mac_learned", has_mac_entries),
            Stage("arp", self._arp),
        ]

    def build(self, ip: str, port: str, style: str = SHORT) -> PortReport:
        """
        Build a fresh report.

        Args:
            ip: Switch address
            port: Port identifier as typed by the user
            style: "short" or "full"

        Returns:
            The assembled PortReport; render() gives the message text
        """
        report = PortReport(ip=ip, port=port, style=style)
        for stage in self.stages(style):
            report.executed.append(stage.name)
            if not stage.run(report):
                logger.debug(f"[pipeline] {ip} {port}: stopped at {stage.name}")
                report.stopped_at = stage.name
                break
        report.updated = self.clock()
        return report

    def switch_summary(self, ip: str, style: str = FULL) -> str:
        """Standalone switch summary, used for a bare switch IP."""
        report = PortReport(ip=ip, port="", style=style)
        self._fetch_switch(report, style)
        return "".join(report.sections)

    # fetch helpers

    def _fetch(self, report: PortReport, section: str, call: Callable, *args, inline: bool = False):
        """
        Run one API call for a section.

        Returns:
            The decoded value, or None when the section has to be left out
        """
        try:
            return call(*args)
        except ResponseDecodeError as e:
            logger.error(f"[pipeline] {report.ip} {report.port}: {section} decode failed: {e}")
        except APIError as e:
            logger.warning(f"[pipeline] {report.ip} {report.port}: {section} failed: {e}")
            if inline:
                report.add(fmt.fmt_err(str(e)))
        return None

    def _fetch_switch(self, report: PortReport, style: str) -> None:
        sw = self._fetch(report, "switch", self.client.get_switch, report.ip, inline=True)
        if sw is None:
            return
        report.switch = sw
        report.add(fmt.format_switch(sw, style))
        if not sw.status:
            report.add(fmt.fmt_err("Switch is unavailable!"))

    # stages

    def _switch(self, report: PortReport) -> bool:
        self._fetch_switch(report, SHORT)
        return True

    def _ports(self, report: PortReport) -> bool:
        ports = self._fetch(report, "ports", self.client.get_ports, report.ip, report.port, inline=True)
        if ports:
            report.ports = ports
            report.add(fmt.format_ports(ports))
        return True

    def _bandwidth(self, report: PortReport) -> bool:
        bw = self._fetch(report, "bandwidth", self.client.get_bandwidth, report.ip, report.port)
        if bw is not None:
            report.bandwidth = bw
            report.add(fmt.format_bandwidth(bw))
        return True

    def _counters(self, report: PortReport) -> bool:
        counters = self._fetch(report, "counters", self.client.get_counters, report.ip, report.port)
        if counters is not None:
            report.counters = counters
            report.add(fmt.format_counters(counters))
        return True

    def _vlan(self, report: PortReport) -> bool:
        vlan = self._fetch(report, "vlan", self.client.get_vlan, report.ip, report.port)
        if vlan is not None:
            report.vlan = vlan
            report.add(fmt.format_vlan(vlan))
        return True

    def _access_ports(self, report: PortReport) -> bool:
        port_list = self._fetch(report, "access_ports", self.client.get_port_list, report.ip)
        if port_list is not None:
            report.access_ports = port_list.access_ports
        return True

    def _acl(self, report: PortReport) -> bool:
        acl = self._fetch(report, "acl", self.client.get_acl, report.ip, report.port)
        if acl is not None:
            report.acl = acl
            report.add(fmt.format_acl(acl))
        return True

    def _multicast(self, report: PortReport) -> bool:
        mcast = self._fetch(report, "multicast", self.client.get_multicast, report.ip)
        if mcast is not None:
            report.multicast = mcast
            report.add(fmt.format_multicast(mcast, report.port_number))
        return True

    def _mac(self, report: PortReport) -> bool:
        table = self._fetch(report, "mac", self.client.get_mac_table, report.ip, report.port)
        if table is not None:
            report.mac_table = table
            report.add(fmt.format_mac(table))
        return True

    def _arp(self, report: PortReport) -> bool:
        found: List[ARPEntry] = []
        for entry in report.acl or []:
            if entry.mode != "permit":
                continue
            try:
                found.extend(self.client.arp_by_ip(entry.ip))
            except APIError as e:
                logger.warning(f"[pipeline] {report.ip} {report.port}: arp by ip {entry.ip} failed: {e}")
                report.add(fmt.fmt_err("Failed to get arp by ip"))
        for entry in report.mac_table or []:
            try:
                found.extend(self.client.arp_by_mac(entry.mac, report.ip))
            except APIError as e:
                logger.warning(f"[pipeline] {report.ip} {report.port}: arp by mac {entry.mac} failed: {e}")
                report.add(fmt.fmt_err("Failed to get arp by mac"))
        report.arp_table = dedup_arp(found)
        report.add(fmt.format_arp(report.arp_table))
        return True
