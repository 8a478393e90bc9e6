"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Controller records decoded from envelope data.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

T = TypeVar('T')


@dataclass
class Client:
    """
    A station (wired or wireless) known to the controller.

    Attributes:
        id: Controller object ID (``_id``)
        mac: MAC address as reported by the controller
        hostname: Host name announced by the station
        name: Alias assigned in the controller UI
        ip: Last known IP address
        oui: Vendor derived from the MAC prefix
        is_wired: Whether the station is on a wired port
        blocked: Whether the station is blocked
        essid: SSID the station is associated with
        network: Network (VLAN) name
        last_seen: Unix timestamp of last activity
        raw: The complete record as returned by the controller
    """
    mac: str
    id: Optional[str] = None
    hostname: Optional[str] = None
    name: Optional[str] = None
    ip: Optional[str] = None
    oui: Optional[str] = None
    is_wired: bool = False
    blocked: bool = False
    essid: Optional[str] = None
    network: Optional[str] = None
    last_seen: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        """Best human-readable label: alias, then host name, then MAC."""
        return self.name or self.hostname or self.mac

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("raw")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Client":
        """Create Client from a ``stat/sta`` record."""
        if not isinstance(data, dict):
            raise TypeError(f"client record must be an object, got {type(data).__name__}")
        return cls(
            mac=data["mac"],
            id=data.get("_id"),
            hostname=data.get("hostname"),
            name=data.get("name"),
            ip=data.get("ip"),
            oui=data.get("oui"),
            is_wired=bool(data.get("is_wired", False)),
            blocked=bool(data.get("blocked", False)),
            essid=data.get("essid"),
            network=data.get("network"),
            last_seen=data.get("last_seen"),
            raw=dict(data),
        )


@dataclass
class WirelessNetwork:
    """
    A WLAN configuration.

    Attributes:
        id: Controller object ID (``_id``), used to update the network
        name: SSID
        enabled: Whether the network is broadcasting
        security: Security mode (open, wpapsk, ...)
        is_guest: Whether this is a guest network
        site_id: Owning site ID
        raw: The complete record as returned by the controller
    """
    id: str
    name: str
    enabled: bool = False
    security: Optional[str] = None
    is_guest: bool = False
    site_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("raw")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WirelessNetwork":
        """Create WirelessNetwork from a ``list/wlanconf`` record."""
        if not isinstance(data, dict):
            raise TypeError(f"wlanconf record must be an object, got {type(data).__name__}")
        return cls(
            id=data["_id"],
            name=data.get("name", ""),
            enabled=bool(data.get("enabled", False)),
            security=data.get("security"),
            is_guest=bool(data.get("is_guest", False)),
            site_id=data.get("site_id"),
            raw=dict(data),
        )


def list_of(factory: Callable[[Dict[str, Any]], T]) -> Callable[[Any], List[T]]:
    """
    Build a decoder for envelope data holding an array of records.

    A missing or null ``data`` decodes as an empty list.

    Example:
        decode = list_of(Client.from_dict)
        clients = decode([{"mac": "aa:bb"}])
    """
    def decode(data: Any) -> List[T]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise TypeError(f"expected an array, got {type(data).__name__}")
        return [factory(item) for item in data]

    return decode
