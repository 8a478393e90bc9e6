"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Typed endpoint wrappers for a UniFi controller.

Each method supplies a path, a request body and a decoder to the request
engine; the engine handles cookies, envelopes and session expiry.
"""

from typing import Any, Dict, List, Union
from urllib.parse import quote

from serval.config.settings import ServalConfig
from serval.core.engine import RequestEngine
from serval.core.models import Client, WirelessNetwork, list_of
from serval.core.session_store import AuthStore, JSONFileAuthStore, SessionStore
from serval.exceptions import InvalidRequestError
from serval.logging_config import get_logger

logger = get_logger(__name__)

BLOCK_STATION = "block-sta"
UNBLOCK_STATION = "unblock-sta"


def _segment(value: str, what: str) -> str:
    """Quote one path segment, rejecting empty values."""
    if not value:
        raise InvalidRequestError(f"{what} is required")
    return quote(value, safe="")


class ControllerAPI:
    """
    Client for one UniFi controller.

    Loads credentials and saved cookies on construction; the session is only
    written back when write_config() is called.

    Example:
        with ControllerAPI(JSONFileAuthStore("~/.serval/auth.json")) as api:
            for client in api.list_clients("default"):
                print(client.mac, client.display_name)
            api.write_config()
    """

    def __init__(
        self,
        auth_store: AuthStore,
        verify: Union[bool, str] = True,
        timeout: float = 30.0,
    ):
        """
        Initialize ControllerAPI.

        Args:
            auth_store: Where credentials and cookies are loaded from and saved to
            verify: Verify the controller's TLS certificate; a path selects a CA bundle
            timeout: Per-request timeout in seconds

        Raises:
            StoreError: If credentials cannot be loaded
        """
        self.store = SessionStore(auth_store)
        self.store.load()
        self.engine = RequestEngine(self.store, verify=verify, timeout=timeout)

    @classmethod
    def from_config(cls, config: ServalConfig) -> "ControllerAPI":
        """Build a ControllerAPI from Serval configuration."""
        auth_store = JSONFileAuthStore(
            config.storage.auth_store,
            backup_count=config.storage.backup_count,
        )
        return cls(
            auth_store,
            verify=config.controller.requests_verify(),
            timeout=config.controller.timeout,
        )

    def write_config(self) -> None:
        """
        Save credentials together with the jar's current cookies.

        Raises:
            StoreError: If the auth store fails to write
        """
        self.store.snapshot_cookies(self.engine.controller_cookies())
        self.store.save()

    def login(self) -> None:
        """Log in explicitly (``POST /api/login``)."""
        self.engine.login()

    def list_clients(self, site: str) -> List[Client]:
        """List active clients of a site."""
        path = f"/api/s/{_segment(site, 'site')}/stat/sta"
        return self.engine.get(path, decode=list_of(Client.from_dict))

    def block_client(self, site: str, mac: str) -> None:
        """Block a client by MAC address."""
        self._station_command(site, BLOCK_STATION, mac)

    def unblock_client(self, site: str, mac: str) -> None:
        """Unblock a client by MAC address."""
        self._station_command(site, UNBLOCK_STATION, mac)

    def list_wireless_networks(self, site: str) -> List[WirelessNetwork]:
        """List WLAN configurations of a site."""
        path = f"/api/s/{_segment(site, 'site')}/list/wlanconf"
        return self.engine.get(path, decode=list_of(WirelessNetwork.from_dict))

    def enable_wireless_network(self, site: str, network_id: str, enabled: bool) -> None:
        """Enable or disable a WLAN. Repeating the same call is harmless."""
        path = (
            f"/api/s/{_segment(site, 'site')}"
            f"/upd/wlanconf/{_segment(network_id, 'wireless network id')}"
        )
        self.engine.post(path, {"enabled": bool(enabled)})
        logger.info(f"Set wireless network {network_id} on site {site} enabled={bool(enabled)}")

    def close(self) -> None:
        self.engine.close()

    def __enter__(self) -> "ControllerAPI":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _station_command(self, site: str, cmd: str, mac: str) -> None:
        if not mac:
            raise InvalidRequestError("mac is required")
        path = f"/api/s/{_segment(site, 'site')}/cmd/stamgr"
        # The controller expects upper-case MACs.
        body: Dict[str, Any] = {"cmd": cmd, "mac": mac.upper()}
        self.engine.post(path, body)
        logger.info(f"Sent {cmd} for {body['mac']} on site {site}")
