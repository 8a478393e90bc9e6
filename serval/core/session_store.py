"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Credential and session-cookie state for Serval.

This module provides the Credentials and CookieRecord data types, the
AuthStore persistence contract with a JSON file implementation, and the
SessionStore that owns the in-memory snapshot the request engine starts from.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from http.cookiejar import Cookie
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from requests.cookies import create_cookie

from serval.core.retry import retry_on_transient_failure
from serval.exceptions import FileReadError, FileWriteError, StoreError
from serval.logging_config import get_logger, log_session_persist

logger = get_logger(__name__)


@dataclass
class CookieRecord:
    """
    A cookie as kept in the credentials file.

    Attributes:
        name: Cookie name
        value: Cookie value
        domain: Domain the jar scoped the cookie to
        path: Cookie path
        secure: Whether the cookie is only sent over HTTPS
        expires: Expiry as a Unix timestamp, None for a session cookie
        http_only: Whether the controller flagged the cookie HttpOnly
    """
    name: str
    value: str
    domain: str = ""
    path: str = "/"
    secure: bool = False
    expires: Optional[int] = None
    http_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CookieRecord":
        """Create CookieRecord from dictionary."""
        return cls(
            name=data["name"],
            value=data["value"],
            domain=data.get("domain", ""),
            path=data.get("path") or "/",
            secure=bool(data.get("secure", False)),
            expires=data.get("expires"),
            http_only=bool(data.get("http_only", False)),
        )

    @classmethod
    def from_cookie(cls, cookie: Cookie) -> "CookieRecord":
        """Capture a cookie held by a requests cookie jar."""
        http_only = (
            cookie.has_nonstandard_attr("HttpOnly")
            or cookie.has_nonstandard_attr("httponly")
        )
        return cls(
            name=cookie.name,
            value=cookie.value or "",
            domain=cookie.domain,
            path=cookie.path or "/",
            secure=bool(cookie.secure),
            expires=cookie.expires,
            http_only=http_only,
        )

    def to_cookie(self, default_domain: str) -> Cookie:
        """Build a jar cookie, scoping it to ``default_domain`` if no domain was stored."""
        rest = {"HttpOnly": None} if self.http_only else {}
        return create_cookie(
            self.name,
            self.value,
            domain=self.domain or default_domain,
            path=self.path or "/",
            secure=self.secure,
            expires=self.expires,
            rest=rest,
        )


@dataclass
class Credentials:
    """
    Everything needed to talk to one controller.

    Attributes:
        username: Controller login name
        password: Controller password
        controller_host: Host name or address of the controller (no scheme, no port)
        cookies: Session cookies captured from the jar, in jar order
    """
    username: str
    password: str
    controller_host: str
    cookies: List[CookieRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "username": self.username,
            "password": self.password,
            "controller_host": self.controller_host,
            "cookies": [cookie.to_dict() for cookie in self.cookies],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credentials":
        """Create Credentials from dictionary."""
        for key in ("username", "password", "controller_host"):
            if not isinstance(data.get(key), str):
                raise ValueError(f"'{key}' must be a string")
        return cls(
            username=data["username"],
            password=data["password"],
            controller_host=data["controller_host"],
            cookies=[CookieRecord.from_dict(c) for c in data.get("cookies") or []],
        )


class AuthStore(ABC):
    """Persistence contract for credentials and saved cookies."""

    @abstractmethod
    def load(self) -> Credentials:
        """
        Load stored credentials.

        Raises:
            StoreError: If the credentials cannot be obtained
        """

    @abstractmethod
    def save(self, credentials: Credentials) -> None:
        """
        Persist credentials.

        Raises:
            StoreError: If the credentials cannot be written
        """


class JSONFileAuthStore(AuthStore):
    """
    Keeps credentials in a JSON file.

    Implements atomic write operations and rolling backups. The file holds a
    password, so it is created readable by the owner only.
    """

    def __init__(self, path: str, backup_count: int = 3):
        """
        Initialize JSONFileAuthStore.

        Args:
            path: Path to the credentials JSON file
            backup_count: Number of rolling backups to maintain (default: 3)
        """
        self.path = Path(path).expanduser()
        self.backup_count = backup_count

    def load(self) -> Credentials:
        """
        Load credentials from disk.

        Raises:
            FileReadError: If the file is missing, unreadable or malformed
        """
        if not self.path.exists():
            raise FileReadError(
                f"Credentials file not found: {self.path}. "
                "Run 'serval auth init' to create it."
            )

        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse credentials JSON from {self.path}: {e}", exc_info=True)
            raise FileReadError(
                f"Failed to parse credentials JSON from {self.path}: {e}"
            ) from e
        except OSError as e:
            logger.error(f"Failed to read credentials from {self.path}: {e}", exc_info=True)
            raise FileReadError(
                f"Failed to read credentials from {self.path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise FileReadError(f"Credentials file {self.path} must contain a JSON object")

        try:
            credentials = Credentials.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise FileReadError(
                f"Invalid credentials in {self.path}: {e}"
            ) from e

        log_session_persist(logger, "load", str(self.path), len(credentials.cookies))
        return credentials

    def save(self, credentials: Credentials) -> None:
        """
        Write credentials to disk.

        Raises:
            FileWriteError: If the write fails after all retries
        """
        try:
            self._persist(credentials)
        except OSError as e:
            logger.error(f"Failed to persist credentials to {self.path}: {e}", exc_info=True)
            raise FileWriteError(
                f"Failed to persist credentials to {self.path}: {e}"
            ) from e

        log_session_persist(logger, "save", str(self.path), len(credentials.cookies))

    @retry_on_transient_failure(max_retries=3, base_delay=0.1, backoff_factor=2.0)
    def _persist(self, credentials: Credentials) -> None:
        """
        Persist credentials using atomic write strategy.

        Steps:
        1. Create backup of existing file
        2. Write to temporary file (.tmp) with owner-only permissions
        3. Flush to disk (fsync)
        4. Atomically replace the target file
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._create_backup()

        tmp_path = self.path.with_suffix('.tmp')
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w') as f:
            json.dump(credentials.to_dict(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, self.path)

    def _create_backup(self) -> None:
        """
        Create rolling backup of the credentials file.

        Rotates backups:
        - auth.json.bak.3 -> deleted
        - auth.json.bak.2 -> auth.json.bak.3
        - auth.json.bak.1 -> auth.json.bak.2
        - auth.json -> auth.json.bak.1
        """
        if not self.path.exists():
            return

        oldest_backup = Path(f"{self.path}.bak.{self.backup_count}")
        if oldest_backup.exists():
            oldest_backup.unlink()

        for i in range(self.backup_count - 1, 0, -1):
            old_backup = Path(f"{self.path}.bak.{i}")
            if old_backup.exists():
                old_backup.rename(Path(f"{self.path}.bak.{i + 1}"))

        backup = Path(f"{self.path}.bak.1")
        backup.write_bytes(self.path.read_bytes())
        os.chmod(backup, 0o600)


class SessionStore:
    """
    Owns the credentials and cookie snapshot for one controller.

    The store never writes on its own: callers decide when to save.
    """

    def __init__(self, auth_store: AuthStore):
        self.auth_store = auth_store
        self._credentials: Optional[Credentials] = None

    @property
    def credentials(self) -> Optional[Credentials]:
        """Loaded credentials, or None before load()."""
        return self._credentials

    @property
    def is_loaded(self) -> bool:
        return self._credentials is not None

    def load(self) -> Credentials:
        """
        Obtain credentials and previously saved cookies.

        Returns:
            The loaded Credentials

        Raises:
            StoreError: If the auth store cannot provide credentials
        """
        credentials = self.auth_store.load()
        if not credentials.controller_host:
            raise StoreError("Stored credentials do not name a controller host")
        self._credentials = credentials
        logger.debug(
            f"Loaded credentials for {credentials.username}@{credentials.controller_host} "
            f"with {len(credentials.cookies)} cookies"
        )
        return credentials

    def snapshot_cookies(self, cookies: Iterable[CookieRecord]) -> None:
        """
        Replace the in-memory cookie list with the jar's current cookies.

        Args:
            cookies: Cookies the jar holds for the controller's base address
        """
        credentials = self._require_loaded()
        credentials.cookies = list(cookies)

    def save(self) -> None:
        """
        Persist the current credentials and cookie snapshot.

        Raises:
            StoreError: If nothing was loaded or the auth store fails to write
        """
        self.auth_store.save(self._require_loaded())

    def _require_loaded(self) -> Credentials:
        if self._credentials is None:
            raise StoreError("Session store has not been loaded")
        return self._credentials
