#!/usr/bin/env python3
"""
FORMATTERS
----------
Render API objects into Telegram HTML text. Every value coming from the API
or from users is escaped before it is placed into markup.
"""

from datetime import datetime, timedelta
from html import escape
from typing import List, Optional, Union

from .models import (
    ARPEntry,
    DBSearch,
    IPCalc,
    Multicast,
    Port,
    PortACL,
    PortBandwidth,
    PortCounters,
    PortMac,
    PortVlan,
    Switch,
)

XCHAR = "❌"
VCHAR = "✅"
WARNCHAR = "‼"
UPCHAR = "\U0001f199"
FAILCHAR = "\U0001f6ab"

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE


def fmt_err(message: str) -> str:
    """Inline error block."""
    return f"\n<b>ERROR</b>{WARNCHAR}\n<code>{escape(str(message))}</code>\n"


def fmt_bytes(value: int, to_bits: bool = False) -> str:
    """Human readable size: binary units for bytes, decimal units for bits."""
    ratio = 1024.0
    units = ["B", "KB", "MB", "GB", "TB"]
    if to_bits:
        ratio = 1000.0
        units = ["bit", "Kbit", "Mbit", "Gbit", "Tbit"]
        value *= 8
    result = float(value)
    i = 0
    while result >= ratio and i < len(units) - 1:
        result /= ratio
        i += 1
    return f"{result:.2f} {units[i]}"


def fmt_kbits(value: int) -> str:
    return fmt_bytes(value * 125, to_bits=True)


def _frac(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}." + str(rest).rjust(digits, "0").rstrip("0")


def format_duration(ns: int) -> str:
    """Format nanoseconds as a compact duration string: 45.7µs, 2.35s, 1m40s."""
    if ns < 0:
        return "-" + format_duration(-ns)
    if ns == 0:
        return "0s"
    if ns < MICROSECOND:
        return f"{ns}ns"
    if ns < MILLISECOND:
        return _frac(ns, MICROSECOND) + "µs"
    if ns < SECOND:
        return _frac(ns, MILLISECOND) + "ms"
    if ns < MINUTE:
        return _frac(ns, SECOND) + "s"
    hours, rest = divmod(ns, HOUR)
    minutes, rest = divmod(rest, MINUTE)
    seconds = _frac(rest, SECOND) + "s"
    if hours:
        return f"{hours}h{minutes}m{seconds}"
    return f"{minutes}m{seconds}"


def round_duration(ns: int) -> int:
    """
    Round to 1% of the largest power-of-ten scale not above the value,
    starting from 100s, so precision follows magnitude.
    """
    scale = 100 * SECOND
    while scale > ns and scale > 1:
        scale //= 10
    step = scale // 100
    if step <= 1:
        return ns
    # half away from zero
    return (ns + step // 2) // step * step


def fmt_rtt(value: Union[float, int, timedelta]) -> str:
    """
    Format a round-trip time given in seconds (or as a timedelta).

    Examples:
        2.345s rounds to 10ms precision: "2.35s"
        45.678µs rounds to 100ns precision: "45.7µs"
    """
    if isinstance(value, timedelta):
        ns = (value.days * 86400 + value.seconds) * SECOND + value.microseconds * MICROSECOND
    else:
        ns = int(round(value * SECOND))
    return format_duration(round_duration(ns))


def updated_stamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"\n<i>Updated:</i> <code>{now:%Y-%m-%d %H:%M:%S}</code>"


def _mark(flag: bool) -> str:
    return VCHAR if flag else XCHAR


# switch and port sections

def format_switch(sw: Switch, style: str = "full") -> str:
    if style == "short":
        return f"<b>{escape(sw.model)}</b> <code>{escape(sw.ip)}</code>\n<i>{escape(sw.location)}</i>\n"
    res = (
        f"<b>{escape(sw.model)}</b> {_mark(sw.status)}\n"
        f"<i>IP:</i> <code>{escape(sw.ip)}</code>\n"
        f"<i>MAC:</i> <code>{escape(sw.mac)}</code>\n"
        f"<i>Location:</i> {escape(sw.location)}\n"
    )
    return res


def format_ports(ports: List[Port]) -> str:
    lines = []
    for p in ports:
        lines.append(f"\n<b>Port {p.port}</b> <i>{escape(p.type)}</i>")
        lines.append(f"<i>State:</i> {_mark(p.state)}  <i>Link:</i> {UPCHAR if p.link else FAILCHAR}")
        if p.speed:
            lines.append(f"<i>Speed:</i> <code>{escape(p.speed)}</code>")
        if p.status:
            lines.append(f"<i>Status:</i> <code>{escape(p.status)}</code>")
        lines.append(f"<i>Learning:</i> {_mark(p.learning)}  <i>Autodowngrade:</i> {_mark(p.autodowngrade)}")
        if p.description:
            lines.append(f"<i>Description:</i> {escape(p.description)}")
        for pair in p.cable:
            lines.append(f"<code>pair {pair.pair}: {escape(pair.state)} {pair.len}m</code>")
    return "\n".join(lines) + "\n"


def format_bandwidth(bw: PortBandwidth) -> str:
    rx = fmt_kbits(bw.rx) if bw.rx else "unlimited"
    tx = fmt_kbits(bw.tx) if bw.tx else "unlimited"
    return f"\n<i>Bandwidth RX/TX:</i> <code>{rx} / {tx}</code>\n"


def format_counters(c: PortCounters) -> str:
    res = (
        f"\n<i>Total RX/TX:</i> <code>{fmt_bytes(c.rx_total)} / {fmt_bytes(c.tx_total)}</code>\n"
        f"<i>Speed RX/TX:</i> <code>{fmt_bytes(c.rx_speed, True)}/s / {fmt_bytes(c.tx_speed, True)}/s</code>\n"
    )
    errors = [(f"RX {e.name}", e.count) for e in c.rx_errors if e.count]
    errors += [(f"TX {e.name}", e.count) for e in c.tx_errors if e.count]
    for name, count in errors:
        res += f"{WARNCHAR} <code>{escape(name)}: {count}</code>\n"
    return res


def format_vlan(v: PortVlan) -> str:
    untagged = ", ".join(str(x) for x in v.untagged) or "-"
    tagged = ", ".join(str(x) for x in v.tagged) or "-"
    return f"\n<i>Untagged VLAN:</i> <code>{untagged}</code>\n<i>Tagged VLAN:</i> <code>{tagged}</code>\n"


def format_acl(acl: List[PortACL]) -> str:
    if not acl:
        return f"\n<b>No ACL entries</b>{WARNCHAR}\n"
    lines = ["\n<b>ACL:</b>"]
    for a in acl:
        mark = VCHAR if a.mode == "permit" else XCHAR
        lines.append(f"{mark} <code>{escape(a.ip)}/{escape(a.mask)}</code> <i>profile {a.profile_id}, id {a.access_id}</i>")
    return "\n".join(lines) + "\n"


def format_multicast(mcast: Multicast, port: int) -> str:
    res = ""
    if not mcast.source:
        res += f"\n<b>No multicast source ports</b>{WARNCHAR}\n"
    state = "enabled" if port in mcast.member else "disabled"
    res += f"\n<i>Multicast: </i><code>{state}</code>\n"
    return res


def format_mac(table: List[PortMac]) -> str:
    if not table:
        return f"\n<b>MAC table is empty</b>{WARNCHAR}\n"
    lines = ["\n<b>MAC:</b>"]
    lines += [f"<code>{escape(m.mac)}</code> <i>vlan {m.vlan_id}</i>" for m in table]
    return "\n".join(lines) + "\n"


def format_arp(table: List[ARPEntry]) -> str:
    if not table:
        return f"\n<b>ARP entries not found</b>{WARNCHAR}\n"
    lines = ["\n<b>ARP:</b>"]
    lines += [
        f"{_mark(a.reachable)} <code>{escape(a.ip)}</code> <code>{escape(a.mac)}</code> <i>vlan {a.vlan_id}</i>"
        for a in table
    ]
    return "\n".join(lines) + "\n"


def format_ipcalc(calc: IPCalc) -> str:
    return (
        f"<i>IP:</i> <code>{escape(calc.ip)}</code>\n"
        f"<i>Mask:</i> <code>{escape(calc.mask)}</code>\n"
        f"<i>Gateway:</i> <code>{escape(calc.gateway)}</code>\n"
        f"<i>Prefix:</i> <code>/{calc.prefix}</code>\n"
    )


def format_search(result: DBSearch) -> str:
    meta = result.meta
    if not result.data:
        return "Nothing found"
    lines = [
        f"<i>Found:</i> <code>{meta.entries.total}</code>, "
        f"<i>page</i> <code>{meta.pages.current}/{meta.pages.total}</code>\n"
    ]
    for sw in result.data:
        lines.append(
            f"{_mark(sw.status)} <code>{escape(sw.ip)}</code> <b>{escape(sw.model)}</b>\n"
            f"<code>{escape(sw.mac)}</code>\n<i>{escape(sw.location)}</i>\n"
        )
    return "\n".join(lines)
