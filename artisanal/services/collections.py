# artisanal/services/collections.py
# SPDX-License-Identifier: Apache-2.0
"""
Collection reader: enumeration, filtering and pagination over the two
remote collections (registered artisans, minted items).

The contracts only expose index-based enumeration, so every listing is a
full scan of the live collection size at call time followed by client-side
filtering. That is fine for the expected sizes (hundreds of entries); the
scan lives entirely behind this class so an indexed implementation can
replace it without touching callers.

Behavior
--------
- Order is remote index order. Listings are only re-ordered when the caller
  passes an explicit ``sort_key``.
- A failure while hydrating one entry is logged and the entry is skipped;
  the listing still succeeds, possibly shorter. Failures reading the
  collection size itself propagate.
- `list_items` drops hidden ids *before* applying ``(offset, limit)``, so
  page boundaries are stable with respect to the hidden set.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from artisanal.core.constants import DEFAULT_PAGE_SIZE
from artisanal.core.errors import (
    ArtisanalError,
    ArtisanNotRegistered,
    CallRejected,
    ItemNotFound,
    ValidationError,
)
from artisanal.core.models import ArtisanRecord, ItemListing, ItemRecord
from artisanal.services.algorand import validate_address
from artisanal.services.gateway import ContractGateway
from artisanal.services.visibility import VisibilityOverlay

log = logging.getLogger(__name__)

# What a single corrupt or vanished entry may raise while being hydrated.
_ENTRY_ERRORS = (ArtisanalError, ValueError, TypeError)


def _token_id(value: Any) -> int:
    try:
        tid = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid token id: {value!r}") from None
    if tid < 0:
        raise ValidationError(f"Invalid token id: {value!r}")
    return tid


class CollectionReader:
    def __init__(self, gateway: ContractGateway, overlay: VisibilityOverlay) -> None:
        self._gateway = gateway
        self._overlay = overlay

    # =========================================================================
    # Artisans
    # =========================================================================

    async def get_artisan(self, address: str) -> ArtisanRecord:
        """Detail query; raises `ArtisanNotRegistered` for unknown addresses."""
        validate_address(address, what="artisan address")
        await self._gateway.ensure_connected()
        try:
            details = await self._gateway.registry().call("getArtisanDetails", address)
        except CallRejected as e:
            raise ArtisanNotRegistered(address) from e
        return ArtisanRecord.from_abi(address, details)

    async def is_verified_artisan(self, address: str) -> bool:
        """Advisory check only; the contracts enforce verification themselves."""
        try:
            validate_address(address, what="artisan address")
            await self._gateway.ensure_connected()
            return bool(
                await self._gateway.registry().call("isVerifiedArtisan", address)
            )
        except ArtisanalError as e:
            log.warning("Error checking if %s is verified: %s", address, e)
            return False

    async def registry_owner(self) -> str:
        """Address allowed to verify artisans."""
        await self._gateway.ensure_connected()
        return await self._gateway.registry().call("owner")

    async def _scan_artisans(self) -> AsyncIterator[ArtisanRecord]:
        await self._gateway.ensure_connected()
        registry = self._gateway.registry()
        count = int(await registry.call("getArtisanCount"))
        for i in range(count):
            try:
                address = await registry.call("artisanAddresses", i)
                details = await registry.call("getArtisanDetails", address)
                yield ArtisanRecord.from_abi(address, details)
            except _ENTRY_ERRORS as e:
                log.warning("Skipping artisan at index %d: %s", i, e)

    async def list_registered_artisans(
        self, sort_key: Callable[[ArtisanRecord], Any] | None = None
    ) -> list[ArtisanRecord]:
        """Every registered artisan, verified or not."""
        records = [rec async for rec in self._scan_artisans()]
        if sort_key is not None:
            records.sort(key=sort_key)
        return records

    async def list_artisans(
        self, sort_key: Callable[[ArtisanRecord], Any] | None = None
    ) -> list[ArtisanRecord]:
        """The artisan directory: verified artisans only."""
        records = [rec async for rec in self._scan_artisans() if rec.is_verified]
        if sort_key is not None:
            records.sort(key=sort_key)
        return records

    # =========================================================================
    # Items
    # =========================================================================

    async def _hydrate(
        self,
        token_id: int,
        *,
        with_provenance: bool = False,
        placeholders: bool = True,
    ) -> ItemRecord:
        nft = self._gateway.nft_contract()
        token_uri = await nft.call("tokenURI", token_id)
        details = await nft.call("getItemDetails", token_id)
        owner = await nft.call("ownerOf", token_id)
        provenance = (
            await nft.call("getProvenanceHistory", token_id) if with_provenance else ()
        )
        return ItemRecord.from_abi(
            token_id, token_uri, details, owner, provenance, placeholders=placeholders
        )

    async def _scan_token_ids(self) -> AsyncIterator[int]:
        await self._gateway.ensure_connected()
        nft = self._gateway.nft_contract()
        total = int(await nft.call("totalSupply"))
        for i in range(total):
            try:
                yield int(await nft.call("tokenByIndex", i))
            except _ENTRY_ERRORS as e:
                log.warning("Skipping item at index %d: %s", i, e)

    async def _scan_items(
        self, skip: Callable[[int], bool] | None = None
    ) -> AsyncIterator[ItemRecord]:
        async for token_id in self._scan_token_ids():
            if skip is not None and skip(token_id):
                continue
            try:
                yield await self._hydrate(token_id)
            except _ENTRY_ERRORS as e:
                # Typically a token burned between the size read and this lookup.
                log.warning("Skipping item %d: %s", token_id, e)

    async def get_item(self, token_id: int) -> ItemRecord:
        """Full detail query including the provenance log."""
        tid = _token_id(token_id)
        await self._gateway.ensure_connected()
        try:
            return await self._hydrate(tid, with_provenance=True)
        except CallRejected as e:
            raise ItemNotFound(tid) from e

    async def stored_item(self, token_id: int) -> ItemRecord:
        """The item exactly as stored: no display placeholders, no provenance."""
        tid = _token_id(token_id)
        await self._gateway.ensure_connected()
        try:
            return await self._hydrate(tid, placeholders=False)
        except CallRejected as e:
            raise ItemNotFound(tid) from e

    async def list_items(
        self,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        include_hidden: bool = False,
        sort_key: Callable[[ItemListing], Any] | None = None,
    ) -> list[ItemListing]:
        """
        One page of the marketplace.

        Hidden ids are removed first (unless ``include_hidden``), then the
        ``[offset, offset + limit)`` window is cut from what remains. Each row
        carries its current hidden state.
        """
        if offset < 0 or limit < 0:
            raise ValidationError("offset and limit must be non-negative")

        hidden = set(self._overlay.hidden_ids())

        def _skip(token_id: int) -> bool:
            return not include_hidden and str(token_id) in hidden

        rows = [
            ItemListing(item=item, is_hidden=str(item.token_id) in hidden)
            async for item in self._scan_items(_skip)
        ]
        if sort_key is not None:
            rows.sort(key=sort_key)
        return rows[offset : offset + limit]

    async def _annotated(self, keep: Callable[[ItemRecord], bool]) -> list[ItemListing]:
        hidden = set(self._overlay.hidden_ids())
        return [
            ItemListing(item=item, is_hidden=str(item.token_id) in hidden)
            async for item in self._scan_items()
            if keep(item)
        ]

    async def list_items_by_owner(self, address: str) -> list[ItemListing]:
        validate_address(address, what="owner address")
        return await self._annotated(lambda item: item.owner_address == address)

    async def list_items_by_artisan(self, address: str) -> list[ItemListing]:
        validate_address(address, what="artisan address")
        return await self._annotated(lambda item: item.artisan_address == address)

    async def list_my_items(self) -> list[ItemRecord]:
        """Items held by the connected account, via the owner enumeration."""
        address = await self._gateway.ensure_connected()
        nft = self._gateway.nft_contract()
        balance = int(await nft.call("balanceOf", address))
        items: list[ItemRecord] = []
        for i in range(balance):
            try:
                token_id = int(await nft.call("tokenOfOwnerByIndex", address, i))
                items.append(await self._hydrate(token_id))
            except _ENTRY_ERRORS as e:
                log.warning("Skipping owned item at index %d: %s", i, e)
        return items
