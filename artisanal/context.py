# artisanal/context.py
# SPDX-License-Identifier: Apache-2.0
"""
Application context: the single owner of all per-session state.

`build_context()` wires the components in dependency order:

    WalletSessionManager → ContractGateway → CollectionReader
                                           → MutationOrchestrator
    VisibilityOverlay, ContentResolver (independent utilities)

The wallet session and the memoized contract handles are the only mutable
shared state, and both live inside the returned `AppContext`. Nothing is
kept in module globals, so independent contexts (e.g. one per test) never
leak into each other.

Usage
-----
    from artisanal.core.config import settings
    from artisanal.context import build_context

    async with build_context(settings) as ctx:
        artisans = await ctx.reader.list_artisans()

Every collaborator can be injected (wallet provider, key-value store, handle
factory, HTTP client); anything not injected is built from `settings`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from artisanal.core.clients import make_algod, make_http
from artisanal.core.config import Settings
from artisanal.services.algorand import AlgodHandleFactory
from artisanal.services.collections import CollectionReader
from artisanal.services.content import ContentResolver
from artisanal.services.gateway import ContractGateway, HandleFactory
from artisanal.services.mutations import MutationOrchestrator
from artisanal.services.visibility import JsonFileStore, KeyValueStore, VisibilityOverlay
from artisanal.services.wallet import KeyringWallet, WalletProvider, WalletSessionManager

if TYPE_CHECKING:
    from types import TracebackType


@dataclass
class AppContext:
    settings: Settings
    wallet: WalletSessionManager
    gateway: ContractGateway
    overlay: VisibilityOverlay
    content: ContentResolver
    reader: CollectionReader
    mutations: MutationOrchestrator

    async def aclose(self) -> None:
        await self.content.close()

    async def __aenter__(self) -> AppContext:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def default_provider(settings: Settings) -> WalletProvider | None:
    """A keyring wallet over `WALLET_MNEMONICS`, or None when none are configured."""
    mnemonics = settings.mnemonics()
    return KeyringWallet(mnemonics) if mnemonics else None


def build_context(
    settings: Settings,
    *,
    provider: WalletProvider | None = None,
    store: KeyValueStore | None = None,
    handle_factory: HandleFactory | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AppContext:
    wallet = WalletSessionManager(
        provider if provider is not None else default_provider(settings)
    )
    if handle_factory is None:
        handle_factory = AlgodHandleFactory(
            make_algod(settings), wait_rounds=settings.CONFIRMATION_ROUNDS
        )
    gateway = ContractGateway(
        wallet,
        handle_factory,
        registry_app_id=settings.REGISTRY_APP_ID,
        nft_app_id=settings.NFT_APP_ID,
    )
    # Handles are rebuilt lazily for whichever account becomes active.
    wallet.on_account_changed(lambda _address: gateway.invalidate())

    overlay = VisibilityOverlay(
        store if store is not None else JsonFileStore(settings.VISIBILITY_STORE_PATH)
    )
    content = ContentResolver.from_settings(
        settings,
        http_client if http_client is not None else make_http(settings),
        owns_client=http_client is None,
    )
    reader = CollectionReader(gateway, overlay)
    mutations = MutationOrchestrator(gateway, content, reader)
    return AppContext(
        settings=settings,
        wallet=wallet,
        gateway=gateway,
        overlay=overlay,
        content=content,
        reader=reader,
        mutations=mutations,
    )
