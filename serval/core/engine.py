"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Authenticated request engine for the UniFi controller API.

Every controller call goes through RequestEngine.execute, which sends the
request over a shared requests.Session (whose cookie jar carries the
controller session), decodes the {data, meta} envelope, and on a
login-required 401 logs in once and retries the original request once.

The session's cookie jar is the only mutable state shared between calls.
Concurrent execute calls are not serialized; each may log in on its own.
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from serval._version import __version__
from serval.core.session_store import CookieRecord, Credentials, SessionStore
from serval.exceptions import (
    ApiError,
    ApplicationError,
    DecodeError,
    HttpError,
    InvariantViolation,
    LoginFailure,
    StoreError,
    TransportError,
)
from serval.logging_config import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_api_request,
    log_login,
    set_correlation_id,
)

logger = get_logger(__name__)

T = TypeVar('T')

CONTROLLER_PORT = 8443
LOGIN_PATH = "/api/login"
OK_CODE = "ok"
LOGIN_REQUIRED_CODE = "error"
LOGIN_REQUIRED_MESSAGE = "api.err.LoginRequired"


@dataclass(frozen=True)
class RequestOptions:
    """Per-call request options."""
    referer: Optional[str] = None


@dataclass
class RequestDescriptor(Generic[T]):
    """
    One logical controller call.

    Attributes:
        method: HTTP method
        path: Path below the controller base URL, starting with "/"
        body: JSON-serializable request body, or None for no body
        decode: Turns envelope ``data`` into the caller's type; None returns it as-is
        options: Per-call options such as the Referer header
    """
    method: str
    path: str
    body: Optional[Any] = None
    decode: Optional[Callable[[Any], T]] = None
    options: RequestOptions = field(default_factory=RequestOptions)


@dataclass
class Envelope:
    """The {data, meta: {rc, msg}} wrapper of every controller response."""
    data: Any
    code: str
    message: str

    @property
    def ok(self) -> bool:
        return self.code == OK_CODE

    def is_login_required(self) -> bool:
        return self.code == LOGIN_REQUIRED_CODE and self.message == LOGIN_REQUIRED_MESSAGE

    @classmethod
    def from_payload(cls, payload: Any) -> "Envelope":
        """
        Build an Envelope from a parsed JSON body.

        Raises:
            DecodeError: If the payload does not have the envelope shape
        """
        if not isinstance(payload, dict):
            raise DecodeError(
                f"response body is a JSON {type(payload).__name__}, expected an object"
            )
        meta = payload.get("meta")
        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            raise DecodeError("response 'meta' is not an object")
        code = meta.get("rc", "")
        message = meta.get("msg", "")
        if not isinstance(code, str) or not isinstance(message, str):
            raise DecodeError("response 'meta.rc' and 'meta.msg' must be strings")
        return cls(data=payload.get("data"), code=code, message=message)


class AttemptState(Enum):
    """Where one execute call stands with respect to the login retry."""
    INITIAL = "initial"
    RETRIED_ONCE = "retried_once"


def _domain_matches(domain: str, host: str) -> bool:
    """Whether a jar cookie domain belongs to the controller host."""
    domain = domain.lstrip(".").lower()
    host = host.lower()
    # http.cookiejar scopes dotless hosts to "<host>.local"
    return domain == host or domain == f"{host}.local" or host.endswith(f".{domain}")


class RequestEngine:
    """
    Executes authenticated controller calls.

    Owns one requests.Session for its whole lifetime. The session's cookie
    jar is seeded from the session store and updated by requests on every
    response; use controller_cookies() to read it back for saving.
    """

    def __init__(
        self,
        session_store: SessionStore,
        verify: Union[bool, str] = True,
        timeout: float = 30.0,
    ):
        """
        Initialize RequestEngine.

        Args:
            session_store: A loaded SessionStore
            verify: Verify the controller's TLS certificate; a path selects a CA bundle
            timeout: Per-request timeout in seconds

        Raises:
            StoreError: If the session store has not been loaded
        """
        if not session_store.is_loaded:
            raise StoreError("Session store must be loaded before building a request engine")

        self.session_store = session_store
        self.verify = verify
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": f"Serval/{__version__}",
        })

        if verify is False:
            urllib3.disable_warnings(InsecureRequestWarning)
            logger.warning(
                f"TLS certificate verification disabled for {self.credentials.controller_host}"
            )

        for record in self.credentials.cookies:
            self.session.cookies.set_cookie(record.to_cookie(self.credentials.controller_host))

        logger.info(
            f"Request engine ready for {self.base_url} "
            f"with {len(self.credentials.cookies)} saved cookies"
        )

    @property
    def credentials(self) -> Credentials:
        credentials = self.session_store.credentials
        if credentials is None:
            raise StoreError("Session store has not been loaded")
        return credentials

    @property
    def base_url(self) -> str:
        return f"https://{self.credentials.controller_host}:{CONTROLLER_PORT}"

    def execute(self, descriptor: RequestDescriptor[T]) -> T:
        """
        Execute one authenticated controller call.

        Args:
            descriptor: The call to make

        Returns:
            The envelope ``data`` passed through ``descriptor.decode``

        Raises:
            TransportError: Network or TLS failure
            DecodeError: Malformed envelope or undecodable data
            ApplicationError: HTTP 200 with a non-ok return code
            HttpError: Any other unsuccessful status
            LoginFailure: The session expired and logging in again failed
        """
        # One correlation ID covers the call, its login and its retry.
        owns_correlation_id = get_correlation_id() is None
        if owns_correlation_id:
            set_correlation_id()
        try:
            return self._run(descriptor, allow_login_retry=True)
        finally:
            if owns_correlation_id:
                clear_correlation_id()

    def get(
        self,
        path: str,
        decode: Optional[Callable[[Any], T]] = None,
        options: Optional[RequestOptions] = None,
    ) -> T:
        return self.execute(RequestDescriptor(
            method="GET",
            path=path,
            decode=decode,
            options=options or RequestOptions(),
        ))

    def post(
        self,
        path: str,
        body: Any,
        decode: Optional[Callable[[Any], T]] = None,
        options: Optional[RequestOptions] = None,
    ) -> T:
        return self.execute(RequestDescriptor(
            method="POST",
            path=path,
            body=body,
            decode=decode,
            options=options or RequestOptions(),
        ))

    def login(self) -> None:
        """
        Log in with the stored credentials.

        A successful login leaves a fresh session cookie in the jar. A failed
        login leaves existing cookies untouched.

        Raises:
            LoginFailure: If the controller rejects the login or cannot be reached
        """
        self._login(trigger="explicit")

    def controller_cookies(self) -> List[CookieRecord]:
        """Cookies the jar currently holds for the controller host, in jar order."""
        host = self.credentials.controller_host
        return [
            CookieRecord.from_cookie(cookie)
            for cookie in self.session.cookies
            if _domain_matches(cookie.domain, host)
        ]

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "RequestEngine":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _login(self, trigger: str) -> None:
        credentials = self.credentials
        descriptor: RequestDescriptor[Any] = RequestDescriptor(
            method="POST",
            path=LOGIN_PATH,
            body={"username": credentials.username, "password": credentials.password},
            options=RequestOptions(referer=f"{self.base_url}/login"),
        )
        try:
            self._run(descriptor, allow_login_retry=False)
        except ApiError as e:
            log_login(
                logger,
                credentials.controller_host,
                credentials.username,
                success=False,
                trigger=trigger,
                reason=str(e),
            )
            raise LoginFailure(
                f"Login to {credentials.controller_host} as {credentials.username} failed: {e}",
                cause=e,
            ) from e

        log_login(
            logger,
            credentials.controller_host,
            credentials.username,
            success=True,
            trigger=trigger,
        )

    def _run(self, descriptor: RequestDescriptor[T], allow_login_retry: bool) -> T:
        url = self.base_url + descriptor.path
        body = self._encode_body(descriptor)

        headers: Dict[str, str] = {}
        if body is not None:
            headers["Content-Type"] = "application/json"
        if descriptor.options.referer:
            headers["Referer"] = descriptor.options.referer

        state = AttemptState.INITIAL
        while True:
            started = time.monotonic()
            response = self._send(descriptor, url, body, headers)
            duration_ms = (time.monotonic() - started) * 1000
            envelope = self._decode_envelope(descriptor, response)
            status = response.status_code

            if status == 200:
                if not envelope.ok:
                    log_api_request(
                        logger, descriptor.method, descriptor.path,
                        status_code=status, outcome="application_error",
                        duration_ms=duration_ms, code=envelope.code, message=envelope.message,
                    )
                    raise ApplicationError(envelope.code, envelope.message)
                log_api_request(
                    logger, descriptor.method, descriptor.path,
                    status_code=status, duration_ms=duration_ms, attempt=state.value,
                )
                return self._decode_data(descriptor, envelope.data)

            if (
                status == 401
                and allow_login_retry
                and state is AttemptState.INITIAL
                and envelope.is_login_required()
            ):
                log_api_request(
                    logger, descriptor.method, descriptor.path,
                    status_code=status, outcome="login_required", duration_ms=duration_ms,
                )
                self._login(trigger="session_expired")
                state = AttemptState.RETRIED_ONCE
                continue

            log_api_request(
                logger, descriptor.method, descriptor.path,
                status_code=status, outcome="http_error",
                duration_ms=duration_ms, attempt=state.value,
            )
            raise HttpError(status, response.reason or "")

    def _encode_body(self, descriptor: RequestDescriptor[Any]) -> Optional[bytes]:
        if descriptor.body is None:
            return None
        try:
            return json.dumps(descriptor.body).encode("utf-8")
        except (TypeError, ValueError) as e:
            # Bodies are built by the endpoint wrappers, never by users.
            raise InvariantViolation(
                f"internal error encoding JSON body for {descriptor.method} {descriptor.path}: {e}"
            ) from e

    def _send(
        self,
        descriptor: RequestDescriptor[Any],
        url: str,
        body: Optional[bytes],
        headers: Dict[str, str],
    ) -> requests.Response:
        try:
            logger.debug(f"Making {descriptor.method} request to {url}")
            return self.session.request(
                method=descriptor.method,
                url=url,
                data=body,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.exceptions.RequestException as e:
            log_api_request(
                logger, descriptor.method, descriptor.path,
                outcome="transport_error", error=str(e),
            )
            raise TransportError(
                f"{descriptor.method} {descriptor.path} failed: {e}"
            ) from e

    def _decode_envelope(
        self,
        descriptor: RequestDescriptor[Any],
        response: requests.Response,
    ) -> Envelope:
        try:
            payload = response.json()
        except ValueError as e:
            log_api_request(
                logger, descriptor.method, descriptor.path,
                status_code=response.status_code, outcome="decode_error",
            )
            raise DecodeError(f"parsing response body: {e}") from e
        return Envelope.from_payload(payload)

    def _decode_data(self, descriptor: RequestDescriptor[T], data: Any) -> T:
        if descriptor.decode is None:
            return data
        try:
            return descriptor.decode(data)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(
                f"decoding response data for {descriptor.method} {descriptor.path}: {e}"
            ) from e
