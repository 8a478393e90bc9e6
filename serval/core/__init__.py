"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Serval, a product of Garudex Labs

Core components for Serval.

This module contains the core primitives:
- Session store and credential persistence
- Authenticated request engine
- Controller record models
"""

from serval.core.engine import (
    Envelope,
    RequestDescriptor,
    RequestEngine,
    RequestOptions,
)
from serval.core.models import Client, WirelessNetwork
from serval.core.session_store import (
    AuthStore,
    CookieRecord,
    Credentials,
    JSONFileAuthStore,
    SessionStore,
)

__all__ = [
    "AuthStore",
    "Client",
    "CookieRecord",
    "Credentials",
    "Envelope",
    "JSONFileAuthStore",
    "RequestDescriptor",
    "RequestEngine",
    "RequestOptions",
    "SessionStore",
    "WirelessNetwork",
]
