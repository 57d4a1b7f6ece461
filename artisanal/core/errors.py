# artisanal/core/errors.py
# SPDX-License-Identifier: Apache-2.0
"""
Error taxonomy shared by every layer of the client.

Low-level causes (algod HTTP errors, simulate failures, httpx transport
errors) are wrapped into these types at the component boundary where they
occur. Each wrapper keeps the human-readable message of the original cause in
``str(exc)`` and chains the original via ``raise ... from``.

Hierarchy
---------
ArtisanalError
├── ConfigurationError
├── ValidationError            (also a ValueError)
├── WalletError                connectivity
│   ├── WalletUnavailable
│   ├── UserRejected
│   ├── NoAuthorizedAccount
│   └── NotConnected
├── LedgerError
│   ├── LedgerUnavailable      transport failure talking to algod
│   ├── CallRejected           a read was rejected by the application
│   └── AuthorizationError     a write was rejected by the application
├── NotFoundError
│   ├── ArtisanNotRegistered
│   └── ItemNotFound
└── ContentError
    ├── ContentUnavailable
    └── UploadFailed
"""

from __future__ import annotations


class ArtisanalError(Exception):
    """Base class for all client errors."""


class ConfigurationError(ArtisanalError):
    """Missing or invalid configuration (app ids, endpoints, credentials)."""


class ValidationError(ArtisanalError, ValueError):
    """Input rejected locally before any remote call was made."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class WalletError(ArtisanalError):
    """Base class for wallet connectivity failures."""


class WalletUnavailable(WalletError):
    """No wallet provider is installed/configured."""


class UserRejected(WalletError):
    """The user declined the account access request."""


class NoAuthorizedAccount(WalletError):
    """The wallet is present but exposes no authorized account."""


class NotConnected(WalletError):
    """An operation needed a signing identity but no session exists."""


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerError(ArtisanalError):
    """Base class for failures reported by (or while reaching) the ledger."""


class LedgerUnavailable(LedgerError):
    """The node could not be reached or answered with a transport error."""


class CallRejected(LedgerError):
    """A read-only contract call was rejected by the application logic."""


class AuthorizationError(LedgerError):
    """A state-changing call was rejected by the application.

    The remote rejection is authoritative: local pre-checks are advisory only.
    """


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(ArtisanalError):
    """Base class for lookups of records that do not exist remotely."""


class ArtisanNotRegistered(NotFoundError):
    def __init__(self, address: str) -> None:
        super().__init__(f"Artisan not registered: {address}")
        self.address = address


class ItemNotFound(NotFoundError):
    def __init__(self, token_id: int) -> None:
        super().__init__(f"Item not found: {token_id}")
        self.token_id = token_id


# ---------------------------------------------------------------------------
# Content store
# ---------------------------------------------------------------------------


class ContentError(ArtisanalError):
    """Base class for content store failures."""


class ContentUnavailable(ContentError):
    """Fetching a content pointer failed (network, 4xx or 5xx)."""

    def __init__(self, pointer: str, message: str) -> None:
        super().__init__(f"Content unavailable for {pointer}: {message}")
        self.pointer = pointer


class UploadFailed(ContentError):
    """Pinning content failed; carries the backend's message."""
