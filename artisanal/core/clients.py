# artisanal/core/clients.py
# SPDX-License-Identifier: Apache-2.0
"""
Client factories for the remote services.

- `make_algod()` → `algosdk.v2client.algod.AlgodClient`
- `make_http()`  → `httpx.AsyncClient` for the content gateway and pinning API

Construction is cheap and performs no I/O; network/auth errors surface on
the first request. Tokens are read from `Settings` and never logged.

Each `AppContext` gets its own instances (no process-wide cache), so tests
and multiple sessions in one process never share connection state.
"""

from __future__ import annotations

import httpx
from algosdk.v2client import algod

from .config import Settings


def make_algod(settings: Settings) -> algod.AlgodClient:
    """Construct an Algod (consensus node) client from settings."""
    return algod.AlgodClient(settings.ALGOD_TOKEN, settings.ALGOD_URL)


def make_http(settings: Settings) -> httpx.AsyncClient:
    """Construct the pooled async HTTP client used by the content resolver."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS),
        limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
    )
