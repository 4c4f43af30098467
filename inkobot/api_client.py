#!/usr/bin/env python3
"""
InkoTools API client
--------------------

Synchronous request/response wrapper around the InkoTools management API.

Every response is a JSON object. A status below 400 is a success with the
payload under "data". A failure carries "detail", which is either a string
(surfaced verbatim) or a list of validation errors (surfaced as the bare
status code).

Typed helpers decode "data" with the per-endpoint schemas in models.py and
raise ResponseDecodeError when the payload does not validate.
"""

from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

from .logging_config import get_api_logger, get_logger
from .models import (
    ARPEntry,
    DBSearch,
    IPCalc,
    Multicast,
    Port,
    PortACL,
    PortBandwidth,
    PortCounters,
    PortList,
    PortMac,
    PortVlan,
    Switch,
)

logger = get_logger(__name__)
api_logger = get_api_logger()


class APIError(Exception):
    """Remote API failure; the message is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseDecodeError(APIError):
    """The response arrived but did not match the expected schema."""


class InkoToolsClient:
    """
    Thin client for the InkoTools API.

    Args:
        base_url: API root, e.g. "http://inkotools.local/api/v1"
        session: Optional requests.Session to reuse (tests inject a fake one)
        timeout: Optional per-request timeout in seconds; None keeps the
            requests default (no timeout)
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, endpoint: str) -> str:
        return self.base_url.rstrip("/") + "/" + endpoint.lstrip("/")

    def request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Make an API call and unwrap the response envelope.

        Args:
            method: HTTP method (GET, POST, DELETE)
            endpoint: Path relative to the API root
            payload: JSON body, sent only when not empty

        Returns:
            The decoded JSON object

        Raises:
            APIError: On network failures, undecodable bodies and status >= 400
        """
        api_logger.debug(f"[API {method}] endpoint: {endpoint}, args: {payload}")
        if not endpoint:
            raise APIError("Empty endpoint")

        url = self._url(endpoint)
        try:
            response = self.session.request(
                method,
                url,
                json=payload or None,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[API {method}] Request failed: {e}, url: {url}")
            raise APIError("API request failed") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"[API {method}] Response json decode failed: {e}, body: {response.text!r}")
            raise APIError("API response decode failed", response.status_code) from e
        if not isinstance(body, dict):
            logger.error(f"[API {method}] Response is not an object: {body!r}")
            raise APIError("API response decode failed", response.status_code)

        if response.status_code < 400:
            api_logger.debug(f"[API {method}] Response: {body}")
            return body

        detail = body.get("detail")
        logger.error(f"[API {method}] Returned {response.status_code} error: {detail!r}, url: {url}")
        if isinstance(detail, str):
            raise APIError(detail, response.status_code)
        raise APIError(str(response.status_code), response.status_code)

    def get(self, endpoint: str) -> Dict[str, Any]:
        return self.request("GET", endpoint)

    def delete(self, endpoint: str) -> Dict[str, Any]:
        return self.request("DELETE", endpoint)

    def post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.request("POST", endpoint, payload)

    # typed endpoints

    def _decode(self, schema: Any, value: Any, endpoint: str) -> Any:
        try:
            if isinstance(schema, type) and issubclass(schema, BaseModel):
                return schema.model_validate(value)
            return TypeAdapter(schema).validate_python(value)
        except ValidationError as e:
            logger.error(f"[API] Decode of {endpoint} failed: {e}")
            raise ResponseDecodeError("API response decode failed") from e

    def _get_data(self, endpoint: str, schema: Any) -> Any:
        return self._decode(schema, self.get(endpoint).get("data"), endpoint)

    def get_switch(self, ip: str) -> Switch:
        return self._get_data(f"/sw/{ip}/", Switch)

    def get_ports(self, ip: str, port: str) -> List[Port]:
        return self._get_data(f"/sw/{ip}/ports/{port}/", List[Port])

    def get_bandwidth(self, ip: str, port: str) -> PortBandwidth:
        return self._get_data(f"/sw/{ip}/ports/{port}/bandwidth", PortBandwidth)

    def get_counters(self, ip: str, port: str) -> PortCounters:
        return self._get_data(f"/sw/{ip}/ports/{port}/counters", PortCounters)

    def clear_counters(self, ip: str, port: str) -> str:
        """Clear port counters; returns the API's human-readable detail."""
        endpoint = f"/sw/{ip}/ports/{port}/counters"
        body = self.delete(endpoint)
        detail = body.get("detail")
        if not isinstance(detail, str):
            logger.error(f"[clear {ip} {port}] API returned no detail, raw data: {body}")
            raise ResponseDecodeError("Empty response")
        return detail

    def get_vlan(self, ip: str, port: str) -> PortVlan:
        return self._get_data(f"/sw/{ip}/ports/{port}/vlan", PortVlan)

    def get_port_list(self, ip: str) -> PortList:
        return self._get_data(f"/sw/{ip}/ports/", PortList)

    def get_acl(self, ip: str, port: str) -> List[PortACL]:
        return self._get_data(f"/sw/{ip}/ports/{port}/acl", List[PortACL])

    def get_multicast(self, ip: str) -> Multicast:
        return self._get_data(f"/sw/{ip}/multicast", Multicast)

    def get_mac_table(self, ip: str, port: str) -> List[PortMac]:
        return self._get_data(f"/sw/{ip}/ports/{port}/mac", List[PortMac])

    def arp_by_ip(self, ip: str) -> List[ARPEntry]:
        body = self.post("/arpsearch", {"ip": ip})
        return self._decode(List[ARPEntry], body.get("data"), "/arpsearch")

    def arp_by_mac(self, mac: str, src_sw_ip: str) -> List[ARPEntry]:
        body = self.post("/arpsearch", {"mac": mac, "src_sw_ip": src_sw_ip})
        return self._decode(List[ARPEntry], body.get("data"), "/arpsearch")

    def search(self, keyword: str, page: int = 1, per_page: int = 4) -> DBSearch:
        body = self.post("/db/search", {"keyword": keyword, "page": page, "per_page": per_page})
        return self._decode(DBSearch, body, "/db/search")

    def ipcalc(self, ip: str) -> IPCalc:
        return self._get_data(f"/ipcalc/{ip}/", IPCalc)
