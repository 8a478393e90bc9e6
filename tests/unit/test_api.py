"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Unit tests for the controller endpoint wrappers.
"""

import json
from unittest.mock import patch

import pytest

from serval.api import ControllerAPI
from serval.config.settings import get_default_config
from serval.core.models import Client, WirelessNetwork
from serval.core.session_store import JSONFileAuthStore
from serval.exceptions import ApplicationError, FileReadError, InvalidRequestError


LOGIN_REQUIRED = {"meta": {"rc": "error", "msg": "api.err.LoginRequired"}}
OK = {"data": [], "meta": {"rc": "ok"}}
SESSION_COOKIE = "unifises=fresh-session; Path=/; Secure; HttpOnly"


@pytest.fixture
def api(auth_store, fake_controller):
    """ControllerAPI whose HTTPS traffic goes to fake_controller."""
    api = ControllerAPI(auth_store)
    api.engine.session.mount("https://", fake_controller)
    yield api
    api.close()


class TestClients:
    """Test client endpoints."""

    def test_list_clients(self, api, fake_controller):
        """Test listing clients decodes each station record."""
        fake_controller.reply(200, {
            "data": [
                {"_id": "c1", "mac": "aa:bb:cc:dd:ee:01", "hostname": "laptop", "ip": "10.0.0.5"},
                {"_id": "c2", "mac": "aa:bb:cc:dd:ee:02", "is_wired": True, "blocked": True},
            ],
            "meta": {"rc": "ok"},
        })

        clients = api.list_clients("default")

        assert fake_controller.paths == ["/api/s/default/stat/sta"]
        assert fake_controller.sent[0].method == "GET"
        assert [c.mac for c in clients] == ["aa:bb:cc:dd:ee:01", "aa:bb:cc:dd:ee:02"]
        assert all(isinstance(c, Client) for c in clients)
        assert clients[0].display_name == "laptop"
        assert clients[1].blocked is True

    def test_list_clients_empty_data(self, api, fake_controller):
        """Test a null data field yields an empty list."""
        fake_controller.reply(200, {"data": None, "meta": {"rc": "ok"}})

        assert api.list_clients("default") == []

    def test_block_client_uppercases_mac(self, api, fake_controller):
        """Test block sends the stamgr command with an upper-case MAC."""
        fake_controller.reply(200, OK)

        api.block_client("default", "aa:bb:cc:dd:ee:ff")

        assert fake_controller.paths == ["/api/s/default/cmd/stamgr"]
        assert fake_controller.body(0) == {"cmd": "block-sta", "mac": "AA:BB:CC:DD:EE:FF"}

    def test_unblock_client(self, api, fake_controller):
        """Test unblock sends the unblock-sta command."""
        fake_controller.reply(200, OK)

        api.unblock_client("branch", "0a:1b:2c:3d:4e:5f")

        assert fake_controller.paths == ["/api/s/branch/cmd/stamgr"]
        assert fake_controller.body(0) == {"cmd": "unblock-sta", "mac": "0A:1B:2C:3D:4E:5F"}

    def test_block_client_after_session_expiry(self, api, fake_controller):
        """Test an expired session costs exactly one login and one retry."""
        (fake_controller
            .reply(401, LOGIN_REQUIRED)
            .reply(200, OK, set_cookie=SESSION_COOKIE)
            .reply(200, OK))

        api.block_client("default", "aa:bb:cc:dd:ee:ff")

        assert fake_controller.paths == [
            "/api/s/default/cmd/stamgr",
            "/api/login",
            "/api/s/default/cmd/stamgr",
        ]
        assert fake_controller.body(2) == {"cmd": "block-sta", "mac": "AA:BB:CC:DD:EE:FF"}

    def test_unknown_station(self, api, fake_controller):
        """Test a controller rejection surfaces as ApplicationError."""
        fake_controller.reply(200, {"data": [], "meta": {"rc": "error", "msg": "api.err.UnknownStation"}})

        with pytest.raises(ApplicationError):
            api.block_client("default", "aa:bb:cc:dd:ee:ff")

    def test_empty_mac_rejected(self, api, fake_controller):
        """Test an empty MAC is rejected before anything is sent."""
        with pytest.raises(InvalidRequestError):
            api.block_client("default", "")
        assert fake_controller.sent == []


class TestWirelessNetworks:
    """Test WLAN endpoints."""

    def test_list_wireless_networks(self, api, fake_controller):
        """Test WLAN records decode into WirelessNetwork."""
        fake_controller.reply(200, {
            "data": [{"_id": "w1", "name": "home", "enabled": True, "security": "wpapsk"}],
            "meta": {"rc": "ok"},
        })

        networks = api.list_wireless_networks("default")

        assert fake_controller.paths == ["/api/s/default/list/wlanconf"]
        assert networks == [WirelessNetwork(
            id="w1", name="home", enabled=True, security="wpapsk",
            raw={"_id": "w1", "name": "home", "enabled": True, "security": "wpapsk"},
        )]

    def test_enable_is_repeatable(self, api, fake_controller):
        """Test enabling twice sends the same update twice without error."""
        fake_controller.reply(200, OK).reply(200, OK)

        api.enable_wireless_network("default", "w1", True)
        api.enable_wireless_network("default", "w1", True)

        assert fake_controller.paths == ["/api/s/default/upd/wlanconf/w1"] * 2
        assert fake_controller.body(0) == fake_controller.body(1) == {"enabled": True}

    def test_disable(self, api, fake_controller):
        """Test disabling sends enabled false."""
        fake_controller.reply(200, OK)

        api.enable_wireless_network("default", "w1", False)

        assert fake_controller.body(0) == {"enabled": False}

    def test_empty_network_id_rejected(self, api, fake_controller):
        with pytest.raises(InvalidRequestError):
            api.enable_wireless_network("default", "", True)
        assert fake_controller.sent == []


class TestPathSegments:
    """Test site and ID handling in paths."""

    def test_empty_site_rejected(self, api, fake_controller):
        with pytest.raises(InvalidRequestError):
            api.list_clients("")
        assert fake_controller.sent == []

    def test_site_is_quoted(self, api, fake_controller):
        """Test a site name cannot escape its path segment."""
        fake_controller.reply(200, OK)

        api.list_clients("a/b c")

        assert fake_controller.sent[0].url.endswith("/api/s/a%2Fb%20c/stat/sta")


class TestSessionPersistence:
    """Test write_config and construction."""

    def test_write_config_saves_new_cookie(self, api, auth_path, fake_controller):
        """Test a cookie obtained by login is written to the credentials file."""
        fake_controller.reply(200, OK, set_cookie=SESSION_COOKIE)

        api.login()
        api.write_config()

        saved = json.loads(auth_path.read_text())
        assert saved["username"] == "admin"
        assert [(c["name"], c["value"]) for c in saved["cookies"]] == [("unifises", "fresh-session")]
        assert saved["cookies"][0]["http_only"] is True

    def test_nothing_saved_without_write_config(self, api, auth_path, fake_controller):
        """Test the credentials file is untouched until write_config."""
        fake_controller.reply(200, OK, set_cookie=SESSION_COOKIE)

        api.login()

        assert json.loads(auth_path.read_text())["cookies"] == []

    def test_saved_cookie_is_reused(self, api, auth_store, fake_controller):
        """Test a second API instance sends the cookie saved by the first."""
        fake_controller.reply(200, OK, set_cookie=SESSION_COOKIE)
        api.login()
        api.write_config()

        second = ControllerAPI(auth_store)
        second.engine.session.mount("https://", fake_controller)
        fake_controller.reply(200, OK)
        second.list_clients("default")
        second.close()

        assert "unifises=fresh-session" in fake_controller.sent[-1].headers["Cookie"]

    def test_missing_credentials_file(self, temp_dir):
        with pytest.raises(FileReadError):
            ControllerAPI(JSONFileAuthStore(str(temp_dir / "missing.json")))

    def test_from_config(self, auth_path):
        """Test from_config wires storage and controller settings."""
        config = get_default_config()
        config.storage.auth_store = str(auth_path)
        config.controller.verify_tls = False
        config.controller.timeout = 7.5

        with patch("serval.core.engine.urllib3.disable_warnings"):
            api = ControllerAPI.from_config(config)

        assert api.engine.verify is False
        assert api.engine.timeout == 7.5
        assert api.engine.base_url == "https://unifi.example.com:8443"
        assert api.store.auth_store.path == auth_path
        api.close()

    def test_context_manager_closes_engine(self, auth_store):
        with patch("serval.core.engine.RequestEngine.close") as mock_close:
            with ControllerAPI(auth_store):
                pass
        mock_close.assert_called_once()
