#!/usr/bin/env python3
"""
Response schemas for the InkoTools API.

One model per endpoint payload. A payload that does not validate is rejected
as a whole instead of being half-filled.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Switch(BaseModel):
    ip: str
    location: str = ""
    mac: str = ""
    model: str = ""
    status: bool = False


class Pair(BaseModel):
    pair: int
    state: str = ""
    len: int = 0


class Port(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    port: int
    type: str = ""
    state: bool = False
    speed: str = ""
    link: bool = False
    status: str = ""
    learning: bool = False
    autodowngrade: bool = False
    description: str = Field(default="", alias="desc")
    cable: List[Pair] = Field(default_factory=list)


class PortBandwidth(BaseModel):
    rx: int = 0
    tx: int = 0


class PortError(BaseModel):
    name: str
    count: int = 0


class PortCounters(BaseModel):
    rx_total: int = 0
    tx_total: int = 0
    rx_speed: int = 0
    tx_speed: int = 0
    rx_errors: List[PortError] = Field(default_factory=list)
    tx_errors: List[PortError] = Field(default_factory=list)


class PortVlan(BaseModel):
    port: int
    untagged: List[int] = Field(default_factory=list)
    tagged: List[int] = Field(default_factory=list)


class PortList(BaseModel):
    access_ports: List[int] = Field(default_factory=list)


class PortACL(BaseModel):
    port: int
    profile_id: int = 0
    access_id: int = 0
    ip: str = ""
    mask: str = ""
    mode: str = ""


class Multicast(BaseModel):
    member: List[int] = Field(default_factory=list)
    source: List[int] = Field(default_factory=list)


class PortMac(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    port: int
    vlan_id: int = Field(default=0, alias="vid")
    mac: str


class ARPEntry(BaseModel):
    """Hashable so the pipeline can deduplicate entries structurally."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ip: str
    mac: str
    vlan_id: int = Field(default=0, alias="vid")
    reachable: bool = Field(default=False, alias="state")


class IPCalc(BaseModel):
    ip: str
    mask: str = ""
    gateway: str = ""
    prefix: int = 0


class SearchEntries(BaseModel):
    current: int = 0
    per_page: int = 0
    total: int = 0


class SearchPages(BaseModel):
    current: int = 1
    total: int = 0


class SearchMeta(BaseModel):
    entries: SearchEntries = Field(default_factory=SearchEntries)
    pages: SearchPages = Field(default_factory=SearchPages)


class DBSearch(BaseModel):
    data: List[Switch] = Field(default_factory=list)
    meta: SearchMeta = Field(default_factory=SearchMeta)
