# artisanal/services/gateway.py
# SPDX-License-Identifier: Apache-2.0
"""
Contract gateway: the only place contract handles are constructed.

`ContractGateway.registry()` and `ContractGateway.nft_contract()` return one
memoized handle per contract for the current signing identity. When the
wallet reports a different account the next access rebuilds the handle, so
at most one live handle per contract per identity exists. Handles returned
earlier stay bound to the identity they were built for; a call already in
flight completes with that identity.

Handle interface
----------------
A handle exposes two coroutines:

- ``call(method, *args)``     read-only ARC-4 call, returns the decoded value
- ``transact(method, *args)`` state-changing call, returns a `TxReceipt`
  only after the transaction is confirmed

The production implementation is `services.algorand.AlgodContractHandle`;
tests inject an in-memory factory with the same shape.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from algosdk import abi
from algosdk.atomic_transaction_composer import TransactionSigner

from artisanal.contracts import load_contract
from artisanal.core.constants import NFT_CONTRACT, REGISTRY_CONTRACT
from artisanal.core.errors import ConfigurationError
from artisanal.core.models import TxReceipt
from artisanal.services.algorand import short_addr
from artisanal.services.wallet import WalletSessionManager

log = logging.getLogger(__name__)


class ContractHandle(Protocol):
    app_id: int
    signer_address: str

    @property
    def contract_name(self) -> str: ...

    async def call(self, method: str, *args: Any) -> Any: ...

    async def transact(self, method: str, *args: Any) -> TxReceipt: ...


HandleFactory = Callable[[abi.Contract, int, str, TransactionSigner], ContractHandle]


class ContractGateway:
    def __init__(
        self,
        wallet: WalletSessionManager,
        factory: HandleFactory,
        *,
        registry_app_id: int,
        nft_app_id: int,
    ) -> None:
        self._wallet = wallet
        self._factory = factory
        self._app_ids = {
            REGISTRY_CONTRACT: int(registry_app_id),
            NFT_CONTRACT: int(nft_app_id),
        }
        self._handles: dict[str, ContractHandle] = {}

    @property
    def wallet(self) -> WalletSessionManager:
        return self._wallet

    async def ensure_connected(self) -> str:
        """Make sure a session exists (silently or by prompting); return its address."""
        return await self._wallet.current_account()

    def _handle(self, name: str) -> ContractHandle:
        address, signer = self._wallet.signer()
        cached = self._handles.get(name)
        if cached is not None and cached.signer_address == address:
            return cached

        app_id = self._app_ids[name]
        if app_id <= 0:
            raise ConfigurationError(
                f"{name} app id is not configured. Check your settings or deployment file."
            )
        handle = self._factory(load_contract(name), app_id, address, signer)
        self._handles[name] = handle
        log.debug("Built %s handle (app %d) for %s", name, app_id, short_addr(address))
        return handle

    def registry(self) -> ContractHandle:
        return self._handle(REGISTRY_CONTRACT)

    def nft_contract(self) -> ContractHandle:
        return self._handle(NFT_CONTRACT)

    def invalidate(self) -> None:
        """Forget every memoized handle; the next access rebuilds it."""
        self._handles.clear()
