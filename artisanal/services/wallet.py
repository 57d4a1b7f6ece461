# artisanal/services/wallet.py
# SPDX-License-Identifier: Apache-2.0
"""
Wallet session management.

`WalletSessionManager` owns the lifecycle of the one `WalletSession` in an
`AppContext`: it requests account access from a `WalletProvider`, performs
silent re-discovery, and follows the provider's account-change stream.

Providers
---------
A provider is anything implementing `WalletProvider`. The shipped
`KeyringWallet` holds signing keys derived from 25-word mnemonics and models
the permission flow of a browser wallet:

- `request_accounts()` asks an optional approval callback (the "prompt");
  declining raises `UserRejected`.
- `accounts()` is the silent query; it returns nothing until access has been
  granted once.
- `switch_account()` / `revoke()` fire account-change notifications, which
  may arrive at any time, including while contract calls are in flight.
  In-flight calls are not cancelled; they finish with the identity they were
  bound to when they started.

Security
--------
Mnemonics grant full control of funds. Keys live in process memory only and
are never logged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from algosdk.atomic_transaction_composer import TransactionSigner

from artisanal.core.errors import (
    NoAuthorizedAccount,
    NotConnected,
    UserRejected,
    WalletUnavailable,
)
from artisanal.core.models import WalletSession
from artisanal.services.algorand import short_addr, signer_from_mn

log = logging.getLogger(__name__)

AccountsListener = Callable[[list[str]], None]
AccountChangedHandler = Callable[[str | None], None]


class WalletProvider(Protocol):
    async def request_accounts(self) -> list[str]: ...

    async def accounts(self) -> list[str]: ...

    def subscribe(self, listener: AccountsListener) -> Callable[[], None]: ...

    def signer_for(self, address: str) -> TransactionSigner: ...


# =============================================================================
# Keyring provider
# =============================================================================


class KeyringWallet:
    """A mnemonic-backed wallet provider with a browser-wallet-like permission model."""

    def __init__(
        self,
        mnemonics: Iterable[str],
        *,
        approve: Callable[[str], bool] | None = None,
    ) -> None:
        self._signers: dict[str, TransactionSigner] = {}
        for mn in mnemonics:
            addr, signer = signer_from_mn(mn)
            self._signers[addr] = signer
        self._active: str | None = next(iter(self._signers), None)
        self._approve = approve
        self._authorized = False
        self._listeners: list[AccountsListener] = []

    @property
    def addresses(self) -> list[str]:
        return list(self._signers)

    def _visible(self) -> list[str]:
        if not self._authorized or self._active is None:
            return []
        return [self._active]

    def _notify(self) -> None:
        visible = self._visible()
        for listener in list(self._listeners):
            listener(visible)

    async def request_accounts(self) -> list[str]:
        if self._active is None:
            return []
        if self._approve is not None and not self._approve(self._active):
            raise UserRejected("User rejected the account access request")
        self._authorized = True
        return self._visible()

    async def accounts(self) -> list[str]:
        return self._visible()

    def subscribe(self, listener: AccountsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def switch_account(self, address: str) -> None:
        """Make another key the active account and notify subscribers."""
        if address not in self._signers:
            raise KeyError(f"Unknown account: {address}")
        self._active = address
        if self._authorized:
            self._notify()

    def revoke(self) -> None:
        """Withdraw the granted access; subscribers receive an empty account list."""
        self._authorized = False
        self._notify()

    def signer_for(self, address: str) -> TransactionSigner:
        try:
            return self._signers[address]
        except KeyError:
            raise NotConnected(f"No signing key for {address}") from None


# =============================================================================
# Session manager
# =============================================================================


class WalletSessionManager:
    """Connects, re-discovers and follows the account of one wallet provider."""

    def __init__(
        self, provider: WalletProvider | None, session: WalletSession | None = None
    ) -> None:
        self._provider = provider
        self._session = session if session is not None else WalletSession()
        self._handlers: list[AccountChangedHandler] = []
        if provider is not None:
            provider.subscribe(self._on_provider_accounts)

    @property
    def session(self) -> WalletSession:
        return self._session

    def _require_provider(self) -> WalletProvider:
        if self._provider is None:
            raise WalletUnavailable(
                "No wallet provider is configured. Set WALLET_MNEMONICS or inject a provider."
            )
        return self._provider

    async def connect(self) -> str:
        """Request account access and bind the session to the granted address."""
        provider = self._require_provider()
        granted = await provider.request_accounts()
        if not granted:
            raise NoAuthorizedAccount("The wallet did not authorize any account")
        self._session.address = granted[0]
        log.info("Wallet connected: %s", short_addr(granted[0]))
        return granted[0]

    async def current_account(self) -> str:
        """Active address; silent discovery first, then a full `connect()`."""
        if self._session.address is not None:
            return self._session.address
        provider = self._require_provider()
        existing = await provider.accounts()
        if existing:
            self._session.address = existing[0]
            return existing[0]
        return await self.connect()

    def on_account_changed(self, handler: AccountChangedHandler) -> Callable[[], None]:
        """Subscribe to account changes; `handler(None)` means disconnected."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def _on_provider_accounts(self, accounts: list[str]) -> None:
        address = accounts[0] if accounts else None
        self._session.address = address
        if address is None:
            log.warning("Wallet disconnected (no authorized accounts)")
        else:
            log.info("Wallet account changed: %s", short_addr(address))
        for handler in list(self._handlers):
            try:
                handler(address)
            except Exception:
                log.exception("Account-change handler %r failed", handler)

    def signer(self) -> tuple[str, TransactionSigner]:
        """`(address, signer)` of the active session."""
        address = self._session.address
        if address is None:
            raise NotConnected("Wallet not connected. Please connect your wallet first.")
        return address, self._require_provider().signer_for(address)
