"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Serval - Session-authenticated client for UniFi network controllers

Serval talks to the controller's cookie-session REST API, keeps the session
cookie across runs, and logs in again transparently when the session expires.
"""

from serval._version import __version__
from serval.api import ControllerAPI
from serval.core.session_store import Credentials, JSONFileAuthStore, SessionStore

__all__ = [
    "__version__",
    "ControllerAPI",
    "Credentials",
    "JSONFileAuthStore",
    "SessionStore",
]
