# artisanal/services/mutations.py
# SPDX-License-Identifier: Apache-2.0
"""
Mutation orchestrator: every state-changing operation of the client.

Sequencing
----------
Multi-step writes run strictly in order and stop at the first failure:

    mint_item:   upload(image) → upload_json(metadata) → mintItem
    update_item: [upload(image) → upload_json(metadata)] → updateMetadata

A failed upload never reaches the ledger. A ledger failure after successful
uploads leaves the pinned content unreferenced; it is not deleted.

Confirmation
------------
Every method returns only after the transaction is confirmed. A remote
rejection surfaces as `AuthorizationError` and is authoritative; local
checks (required fields, address format, advisory lookups) only avoid paying
for calls that are bound to fail.

Double submission
-----------------
Writes are not idempotent on the ledger. Concurrent calls with the same
operation, signer and arguments join the submission already in flight
instead of sending a second transaction. The shared submission is shielded
from caller cancellation: once sent, a write runs to completion.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from artisanal.core.errors import ArtisanNotRegistered, LedgerError, ValidationError
from artisanal.core.models import MintResult, TxReceipt, item_metadata
from artisanal.services.algorand import short_addr, validate_address
from artisanal.services.collections import CollectionReader
from artisanal.services.content import ContentResolver
from artisanal.services.gateway import ContractGateway

log = logging.getLogger(__name__)

T = TypeVar("T")

_EDITABLE_FIELDS = ("name", "description", "materials")


def _require(**fields: str | None) -> None:
    missing = [k for k, v in fields.items() if not (v or "").strip()]
    if missing:
        raise ValidationError(f"Required field(s) missing: {', '.join(missing)}")


def _token_id(value: Any) -> int:
    try:
        tid = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Token ID is required (got {value!r})") from None
    if tid < 0:
        raise ValidationError(f"Invalid token id: {tid}")
    return tid


def _digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class MutationOrchestrator:
    def __init__(
        self,
        gateway: ContractGateway,
        content: ContentResolver,
        reader: CollectionReader,
    ) -> None:
        self._gateway = gateway
        self._content = content
        self._reader = reader
        self._inflight: dict[tuple[Any, ...], asyncio.Future[Any]] = {}

    # =========================================================================
    # In-flight de-duplication
    # =========================================================================

    def in_flight(self) -> int:
        return len(self._inflight)

    async def _once(
        self, key: tuple[Any, ...], run: Callable[[], Awaitable[T]]
    ) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(run())
            self._inflight[key] = task

            def _forget(done: asyncio.Future[Any]) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]
                if not done.cancelled():
                    # Marks the outcome retrieved even if every caller was cancelled.
                    done.exception()

            task.add_done_callback(_forget)
        else:
            log.info("Joining in-flight %s instead of submitting again", key[0])
        return await asyncio.shield(task)

    # =========================================================================
    # Artisans
    # =========================================================================

    async def _is_registered(self, address: str) -> bool:
        try:
            await self._reader.get_artisan(address)
        except ArtisanNotRegistered:
            return False
        return True

    async def register_artisan(
        self, name: str, location: str, specialization: str, contact_info: str
    ) -> TxReceipt:
        """
        Register the connected account as an artisan.

        The address is the natural key: if it is already registered the call
        becomes `updateArtisanInfo`, never a second registration.
        """
        _require(
            name=name,
            location=location,
            specialization=specialization,
            contact_info=contact_info,
        )
        address = await self._gateway.ensure_connected()
        registry = self._gateway.registry()
        args = (name, location, specialization, contact_info)

        async def _run() -> TxReceipt:
            method = (
                "updateArtisanInfo"
                if await self._is_registered(address)
                else "registerArtisan"
            )
            log.info("%s for %s", method, short_addr(address))
            return await registry.transact(method, *args)

        return await self._once(("registerArtisan", address, *args), _run)

    async def update_artisan_info(
        self, name: str, location: str, specialization: str, contact_info: str
    ) -> TxReceipt:
        _require(
            name=name,
            location=location,
            specialization=specialization,
            contact_info=contact_info,
        )
        address = await self._gateway.ensure_connected()
        registry = self._gateway.registry()
        args = (name, location, specialization, contact_info)
        return await self._once(
            ("updateArtisanInfo", address, *args),
            lambda: registry.transact("updateArtisanInfo", *args),
        )

    async def verify_artisan(self, artisan: str) -> TxReceipt:
        """Owner only. One-way: there is no operation to revoke verification."""
        validate_address(artisan, what="artisan address")
        address = await self._gateway.ensure_connected()
        registry = self._gateway.registry()
        return await self._once(
            ("verifyArtisan", address, artisan),
            lambda: registry.transact("verifyArtisan", artisan),
        )

    # =========================================================================
    # Items
    # =========================================================================

    async def mint_item(
        self,
        image: bytes,
        name: str,
        description: str,
        materials: str,
        *,
        content_type: str = "application/octet-stream",
        filename: str = "item",
    ) -> MintResult:
        """Upload image and metadata, then mint to the connected (verified) artisan."""
        _require(name=name, description=description, materials=materials)
        if not image:
            raise ValidationError("An image is required to mint an item")
        address = await self._gateway.ensure_connected()
        # Bound now: an account switch mid-upload must not change who mints.
        nft = self._gateway.nft_contract()

        async def _run() -> MintResult:
            image_pin = await self._content.upload(image, content_type, filename)
            meta_pin = await self._content.upload_json(
                item_metadata(name, description, materials, image_pin.pointer, address)
            )
            receipt = await nft.transact(
                "mintItem", address, meta_pin.pointer, name, description, materials
            )
            if receipt.return_value is None:
                raise LedgerError(
                    f"Mint confirmed in {receipt.tx_id} but returned no token id"
                )
            token_id = int(receipt.return_value)
            log.info("Minted item %d for %s", token_id, short_addr(address))
            return MintResult(
                token_id=token_id, image=image_pin, metadata=meta_pin, receipt=receipt
            )

        key = ("mintItem", address, _digest(image), name, description, materials)
        return await self._once(key, _run)

    async def update_item(
        self,
        token_id: int,
        edits: Mapping[str, str],
        new_image: bytes | None = None,
        *,
        content_type: str = "application/octet-stream",
        filename: str = "item",
    ) -> TxReceipt:
        """
        Apply `edits` (any of name/description/materials) to an item.

        With `new_image` a fresh image and metadata document are pinned and the
        token points at the new metadata; otherwise the current pointer is kept.
        Fields left out keep their stored value, so a field that is empty on
        the ledger must be supplied in `edits`.
        """
        tid = _token_id(token_id)
        unknown = sorted(set(edits) - set(_EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")

        # Stored values, not display placeholders, are what gets written back.
        current = await self._reader.stored_item(tid)
        name = edits.get("name", current.name)
        description = edits.get("description", current.description)
        materials = edits.get("materials", current.materials)
        _require(name=name, description=description, materials=materials)

        address = await self._gateway.ensure_connected()
        nft = self._gateway.nft_contract()

        async def _run() -> TxReceipt:
            pointer = current.content_pointer
            if new_image:
                image_pin = await self._content.upload(new_image, content_type, filename)
                meta_pin = await self._content.upload_json(
                    item_metadata(
                        name,
                        description,
                        materials,
                        image_pin.pointer,
                        current.artisan_address,
                        date_trait="Last Updated",
                    )
                )
                pointer = meta_pin.pointer
            _require(token_uri=pointer)
            return await nft.transact(
                "updateMetadata", tid, pointer, name, description, materials
            )

        image_key = _digest(new_image) if new_image else None
        key = ("updateMetadata", address, tid, name, description, materials, image_key)
        return await self._once(key, _run)

    async def burn_item(self, token_id: int) -> TxReceipt:
        """Irreversible. Callers confirm intent before calling."""
        tid = _token_id(token_id)
        address = await self._gateway.ensure_connected()
        nft = self._gateway.nft_contract()
        return await self._once(
            ("burnToken", address, tid), lambda: nft.transact("burnToken", tid)
        )

    async def transfer(self, token_id: int, to: str) -> TxReceipt:
        tid = _token_id(token_id)
        validate_address(to, what="recipient address")
        address = await self._gateway.ensure_connected()
        if to == address:
            raise ValidationError("Cannot transfer an item to yourself")
        nft = self._gateway.nft_contract()
        return await self._once(
            ("transferFrom", address, to, tid),
            lambda: nft.transact("transferFrom", address, to, tid),
        )

    async def add_provenance_record(self, token_id: int, record: str) -> TxReceipt:
        tid = _token_id(token_id)
        _require(record=record)
        address = await self._gateway.ensure_connected()
        nft = self._gateway.nft_contract()
        return await self._once(
            ("addProvenanceRecord", address, tid, record),
            lambda: nft.transact("addProvenanceRecord", tid, record),
        )
