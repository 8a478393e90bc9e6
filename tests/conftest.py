"""
Pytest configuration and shared fixtures for Serval tests.
"""

import json
import tempfile
from collections import deque
from http import HTTPStatus
from http.client import HTTPMessage
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple
from urllib.parse import urlparse

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from serval.core.engine import RequestEngine
from serval.core.session_store import Credentials, JSONFileAuthStore, SessionStore


CONTROLLER_HOST = "unifi.example.com"
USERNAME = "admin"
PASSWORD = "s3cret"

LOGIN_REQUIRED = {"meta": {"rc": "error", "msg": "api.err.LoginRequired"}}
OK_EMPTY = {"data": [], "meta": {"rc": "ok"}}

# (status, payload, set_cookie)
Reply = Tuple[int, Any, Optional[str]]


def build_response(
    request: requests.PreparedRequest,
    status: int,
    payload: Any = None,
    set_cookie: Optional[str] = None,
    raw_body: Optional[bytes] = None,
) -> requests.Response:
    """
    Build a requests.Response the way HTTPAdapter would.

    Set-Cookie headers go through the same extraction path requests uses for
    real responses, so the session's cookie jar is updated for real.
    """
    response = requests.Response()
    response.status_code = status
    response.reason = HTTPStatus(status).phrase
    response.request = request
    response.url = request.url
    response.encoding = "utf-8"
    if raw_body is not None:
        response._content = raw_body
    elif payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
    else:
        response._content = b""

    headers = CaseInsensitiveDict({"Content-Type": "application/json"})
    message = HTTPMessage()
    if set_cookie:
        headers["Set-Cookie"] = set_cookie
        message["Set-Cookie"] = set_cookie
    response.headers = headers
    response.raw = SimpleNamespace(_original_response=SimpleNamespace(msg=message))
    return response


class FakeController(BaseAdapter):
    """
    Transport adapter standing in for a UniFi controller.

    Replies come from a queue (see ``reply``) or, when set, from ``handler``.
    Every request is recorded in ``sent``.
    """

    def __init__(self, handler: Optional[Callable[[requests.PreparedRequest], Reply]] = None):
        super().__init__()
        self.handler = handler
        self._queue: deque = deque()
        self.sent: List[requests.PreparedRequest] = []
        self.send_kwargs: List[Dict[str, Any]] = []

    def reply(
        self,
        status: int,
        payload: Any = None,
        set_cookie: Optional[str] = None,
        raw_body: Optional[bytes] = None,
    ) -> "FakeController":
        self._queue.append((status, payload, set_cookie, raw_body))
        return self

    def fail_with(self, exc: Exception) -> "FakeController":
        self._queue.append(exc)
        return self

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        self.send_kwargs.append({"timeout": timeout, "verify": verify})
        if self.handler is not None:
            status, payload, set_cookie = self.handler(request)
            return build_response(request, status, payload, set_cookie)
        if not self._queue:
            raise AssertionError(f"unexpected request {request.method} {request.url}")
        item = self._queue.popleft()
        if isinstance(item, Exception):
            raise item
        status, payload, set_cookie, raw_body = item
        return build_response(request, status, payload, set_cookie, raw_body)

    def close(self):
        pass

    @property
    def paths(self) -> List[str]:
        return [urlparse(r.url).path for r in self.sent]

    def body(self, index: int) -> Dict[str, Any]:
        return json.loads(self.sent[index].body)


class ControllerSimulator:
    """
    Stateful controller: issues session cookies on login and rejects
    requests whose cookie it did not issue.
    """

    def __init__(self, username: str = USERNAME, password: str = PASSWORD):
        self.username = username
        self.password = password
        self.valid_sessions: set = set()
        self.logins = 0
        self.wlans = {"wlan-1": {"_id": "wlan-1", "name": "home", "enabled": False}}

    def expire_all(self) -> None:
        self.valid_sessions.clear()

    def __call__(self, request: requests.PreparedRequest) -> Reply:
        path = urlparse(request.url).path
        if path == "/api/login":
            body = json.loads(request.body)
            if body == {"username": self.username, "password": self.password}:
                self.logins += 1
                token = f"session-{self.logins}"
                self.valid_sessions.add(token)
                return 200, OK_EMPTY, f"unifises={token}; Path=/; Secure; HttpOnly"
            return 400, {"data": [], "meta": {"rc": "error", "msg": "api.err.Invalid"}}, None

        if self._session_token(request) not in self.valid_sessions:
            return 401, LOGIN_REQUIRED, None

        if path == "/api/s/default/stat/sta":
            return 200, {"data": [{"mac": "aa:bb:cc:dd:ee:ff", "hostname": "laptop"}],
                         "meta": {"rc": "ok"}}, None
        if path.startswith("/api/s/default/upd/wlanconf/"):
            wlan = self.wlans[path.rsplit("/", 1)[1]]
            wlan.update(json.loads(request.body))
            return 200, {"data": [wlan], "meta": {"rc": "ok"}}, None
        return 404, {"meta": {"rc": "error", "msg": "api.err.NotFound"}}, None

    @staticmethod
    def _session_token(request: requests.PreparedRequest) -> Optional[str]:
        for part in request.headers.get("Cookie", "").split(";"):
            name, _, value = part.strip().partition("=")
            if name == "unifises":
                return value
        return None


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory that is cleaned up after test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def auth_path(temp_dir: Path) -> Path:
    """Path of a credentials file holding the test user and no cookies."""
    path = temp_dir / "auth.json"
    JSONFileAuthStore(str(path)).save(
        Credentials(username=USERNAME, password=PASSWORD, controller_host=CONTROLLER_HOST)
    )
    return path


@pytest.fixture
def auth_store(auth_path: Path) -> JSONFileAuthStore:
    return JSONFileAuthStore(str(auth_path))


@pytest.fixture
def session_store(auth_store: JSONFileAuthStore) -> SessionStore:
    store = SessionStore(auth_store)
    store.load()
    return store


@pytest.fixture
def fake_controller() -> FakeController:
    return FakeController()


@pytest.fixture
def engine(session_store: SessionStore, fake_controller: FakeController) -> Generator[RequestEngine, None, None]:
    """RequestEngine whose HTTPS traffic goes to fake_controller."""
    engine = RequestEngine(session_store)
    engine.session.mount("https://", fake_controller)
    yield engine
    engine.close()


@pytest.fixture
def simulator() -> ControllerSimulator:
    return ControllerSimulator()


@pytest.fixture
def simulated_controller(simulator: ControllerSimulator) -> FakeController:
    """FakeController answering from the stateful simulator."""
    return FakeController(handler=simulator)
