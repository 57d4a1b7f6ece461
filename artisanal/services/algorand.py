# artisanal/services/algorand.py
# SPDX-License-Identifier: Apache-2.0
"""
Algorand service utilities.

This module centralizes the algosdk-facing pieces of the client:
  • Address/mnemonic conversions and validation helpers
  • `AlgodContractHandle`, the production contract handle: ARC-4 method
    calls composed with `AtomicTransactionComposer`, reads executed through
    `simulate`, writes through `execute` (blocks until confirmed)
  • Translation of algosdk/transport failures into `core.errors`

Design principles
-----------------
- No hidden side effects; functions do only what they say.
- One translation boundary: nothing above `services.gateway` ever sees an
  `AlgodHTTPError` or a raw simulate failure message.
- Blocking SDK calls run in a worker thread (`asyncio.to_thread`) so the
  event loop keeps serving other tasks while a call is in flight.

Notes
-----
Reads are simulated with `allow_unnamed_resources` so box-backed getters
need no explicit box references. Writes are submitted as-is; the contracts
are expected to declare their own resources.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from algosdk import abi, account, encoding, error, mnemonic
from algosdk.atomic_transaction_composer import (
    AccountTransactionSigner,
    AtomicTransactionComposer,
    TransactionSigner,
)
from algosdk.v2client import algod
from algosdk.v2client.models import SimulateRequest

from artisanal.core.constants import ZERO_ADDRESS
from artisanal.core.errors import (
    AuthorizationError,
    CallRejected,
    LedgerUnavailable,
    ValidationError,
)
from artisanal.core.models import TxReceipt

log = logging.getLogger(__name__)

# Fragments algod uses when application logic rejects a transaction.
_REJECTION_MARKERS = (
    "logic eval error",
    "rejected by approvalprogram",
    "rejected by logic",
    "assert failed",
    "err opcode",
)

# =============================================================================
# Address & key utilities
# =============================================================================


def validate_address(addr: str | None, *, what: str = "address") -> str:
    """Return `addr` if it is a well-formed, non-zero Algorand address."""
    if not addr or not encoding.is_valid_address(addr):
        raise ValidationError(f"Invalid Algorand {what}: {addr!r}")
    if addr == ZERO_ADDRESS:
        raise ValidationError(f"The zero address is not a valid {what}")
    return addr


def addr_from_mn(mn: str | None) -> str | None:
    """Derive an Algorand address from a 25-word mnemonic (or None on bad input)."""
    if not mn:
        return None
    try:
        return account.address_from_private_key(mnemonic.to_private_key(mn))
    except Exception:
        return None


def signer_from_mn(mn: str) -> tuple[str, TransactionSigner]:
    """Return `(address, signer)` for a mnemonic; raises `ValidationError` if malformed."""
    try:
        sk = mnemonic.to_private_key(mn)
    except Exception as e:
        raise ValidationError("Invalid 25-word mnemonic") from e
    return account.address_from_private_key(sk), AccountTransactionSigner(sk)


def short_addr(addr: str | None) -> str:
    """Truncated display form (`ABCDEF…WXYZ`) for logs and CLI output."""
    if not addr:
        return "—"
    return f"{addr[:6]}…{addr[-4:]}"


# =============================================================================
# Error translation
# =============================================================================


def is_logic_rejection(msg: str) -> bool:
    low = (msg or "").lower()
    return any(marker in low for marker in _REJECTION_MARKERS)


def _translate(exc: Exception, method: str, *, write: bool) -> Exception:
    """Map an SDK/transport exception onto the client taxonomy."""
    msg = str(exc) or exc.__class__.__name__
    if isinstance(exc, (error.ABIEncodingError, error.ABITypeError)):
        return ValidationError(f"{method}: invalid arguments ({msg})")
    if is_logic_rejection(msg):
        cls = AuthorizationError if write else CallRejected
        return cls(f"{method} rejected: {msg}")
    return LedgerUnavailable(f"{method} failed: {msg}")


# =============================================================================
# Contract handle
# =============================================================================


class AlgodContractHandle:
    """
    A contract handle bound to one application id and one signing identity.

    Instances are built only by `services.gateway.ContractGateway`, which
    memoizes one per contract for the current identity.
    """

    def __init__(
        self,
        client: algod.AlgodClient,
        contract: abi.Contract,
        app_id: int,
        sender: str,
        signer: TransactionSigner,
        *,
        wait_rounds: int = 4,
    ) -> None:
        self._client = client
        self._contract = contract
        self.app_id = int(app_id)
        self.signer_address = sender
        self._signer = signer
        self._wait_rounds = int(wait_rounds)

    @property
    def contract_name(self) -> str:
        return self._contract.name

    def _compose(self, method: str, args: tuple[Any, ...]) -> AtomicTransactionComposer:
        try:
            abi_method = self._contract.get_method_by_name(method)
        except KeyError as e:
            raise ValidationError(
                f"{self.contract_name} has no method {method!r}"
            ) from e
        atc = AtomicTransactionComposer()
        atc.add_method_call(
            app_id=self.app_id,
            method=abi_method,
            sender=self.signer_address,
            sp=self._client.suggested_params(),
            signer=self._signer,
            method_args=list(args),
        )
        return atc

    def _call_sync(self, method: str, args: tuple[Any, ...]) -> Any:
        try:
            atc = self._compose(method, args)
            resp = atc.simulate(
                self._client,
                SimulateRequest(
                    txn_groups=[],
                    allow_empty_signatures=True,
                    allow_unnamed_resources=True,
                ),
            )
        except ValidationError:
            raise
        except (
            error.AlgodHTTPError,
            error.AtomicTransactionComposerError,
            error.ABIEncodingError,
            error.ABITypeError,
            OSError,
        ) as e:
            raise _translate(e, method, write=False) from e

        if resp.failure_message:
            raise CallRejected(f"{method} rejected: {resp.failure_message}")
        result = resp.abi_results[0]
        if result.decode_error:
            raise CallRejected(f"{method} returned undecodable data: {result.decode_error}")
        return result.return_value

    def _transact_sync(self, method: str, args: tuple[Any, ...]) -> TxReceipt:
        try:
            atc = self._compose(method, args)
            resp = atc.execute(self._client, self._wait_rounds)
        except ValidationError:
            raise
        except (
            error.AlgodHTTPError,
            error.AtomicTransactionComposerError,
            error.ConfirmationTimeoutError,
            error.ABIEncodingError,
            error.ABITypeError,
            OSError,
        ) as e:
            raise _translate(e, method, write=True) from e

        result = resp.abi_results[0] if resp.abi_results else None
        return TxReceipt(
            tx_id=resp.tx_ids[0],
            confirmed_round=int(resp.confirmed_round or 0),
            return_value=result.return_value if result is not None else None,
        )

    async def call(self, method: str, *args: Any) -> Any:
        """Execute a read-only method and return its decoded ABI value."""
        return await asyncio.to_thread(self._call_sync, method, args)

    async def transact(self, method: str, *args: Any) -> TxReceipt:
        """Submit a state-changing method call and wait for confirmation."""
        receipt = await asyncio.to_thread(self._transact_sync, method, args)
        log.info(
            "%s.%s confirmed in round %d (txid %s)",
            self.contract_name,
            method,
            receipt.confirmed_round,
            receipt.tx_id,
        )
        return receipt


class AlgodHandleFactory:
    """Builds `AlgodContractHandle`s against one algod client."""

    def __init__(self, client: algod.AlgodClient, *, wait_rounds: int = 4) -> None:
        self._client = client
        self._wait_rounds = wait_rounds

    def __call__(
        self,
        contract: abi.Contract,
        app_id: int,
        sender: str,
        signer: TransactionSigner,
    ) -> AlgodContractHandle:
        return AlgodContractHandle(
            self._client,
            contract,
            app_id,
            sender,
            signer,
            wait_rounds=self._wait_rounds,
        )
