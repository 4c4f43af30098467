#!/usr/bin/env python3
"""
Parsing helpers shared by the mode handlers: argument splitting and IP
normalization (short "x.y" form and switch network detection).
"""

import ipaddress
import re
from typing import Iterable, List, Optional, Tuple

from .config import DEFAULT_SWITCH_NETWORKS

_OCTET = r"(?:[0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])"
_FULL_IP_RE = re.compile(rf"^(?:{_OCTET}\.){{3}}{_OCTET}$")
_SHORT_IP_RE = re.compile(rf"^{_OCTET}\.{_OCTET}$")


def split_args(args: str) -> Tuple[str, str]:
    """Split the first word from the rest; the rest is stripped."""
    parts = args.split(" ", 1)
    if len(parts) < 2:
        return parts[0], ""
    return parts[0], parts[1].strip()


def split_last(args: str) -> Tuple[str, str]:
    """Split the last word from everything before it."""
    before, _, last = args.rpartition(" ")
    return before, last


class IPNormalizer:
    """
    Expands short addresses and tells switch addresses from client ones.

    Args:
        switch_networks: CIDR networks that hold management addresses of switches
        short_prefix: Prefix prepended to the two-octet short form
    """

    def __init__(self, switch_networks: Optional[Iterable[str]] = None, short_prefix: str = "192.168."):
        self.short_prefix = short_prefix
        self.switch_networks: List[ipaddress.IPv4Network] = [
            ipaddress.ip_network(net) for net in (switch_networks or DEFAULT_SWITCH_NETWORKS)
        ]

    def full_ip(self, ip: str, is_switch: bool = False) -> str:
        """
        Normalize `ip`.

        Returns:
            The full dotted address, or an empty string when `ip` is not a
            valid address (or, with `is_switch`, not in a switch network)
        """
        if _SHORT_IP_RE.match(ip):
            ip = self.short_prefix + ip
        if not _FULL_IP_RE.match(ip):
            return ""
        if is_switch and not self.is_switch(ip):
            return ""
        return ip

    def is_switch(self, ip: str) -> bool:
        address = ipaddress.ip_address(ip)
        return any(address in net for net in self.switch_networks)
