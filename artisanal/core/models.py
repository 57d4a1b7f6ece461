# artisanal/core/models.py
# SPDX-License-Identifier: Apache-2.0
"""
Typed client-side snapshots of remote records.

The ledger owns every artisan and item; these dataclasses are read-through
snapshots with no write-back. Raw ABI return values are turned into records
exclusively through the ``from_abi`` constructors below, which is also the
only place where display defaults are substituted for empty fields.

ABI shapes consumed
-------------------
- ``getArtisanDetails(address)`` →
  ``(string name, string location, string specialization,
  string contactInfo, bool isVerified, uint64 registrationDate)``
- ``getItemDetails(uint64)`` →
  ``(string name, string description, string materials,
  address artisan, uint64 creationDate)``
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .constants import (
    DEFAULT_SPECIALIZATION,
    MATERIALS_NOT_SPECIFIED,
    NO_DESCRIPTION,
    UNKNOWN_ARTISAN_NAME,
    UNKNOWN_LOCATION,
    UNNAMED_ITEM,
)
from .errors import ArtisanNotRegistered


def _ts(seconds: int) -> datetime | None:
    return datetime.fromtimestamp(seconds, tz=timezone.utc) if seconds else None


@dataclass
class WalletSession:
    """The single wallet session owned by an `AppContext`."""

    address: str | None = None

    @property
    def connected(self) -> bool:
        return self.address is not None


@dataclass(frozen=True)
class ArtisanRecord:
    address: str
    name: str
    location: str
    specialization: str
    contact_info: str
    is_verified: bool
    registration_timestamp: int

    @property
    def registered_at(self) -> datetime | None:
        return _ts(self.registration_timestamp)

    @classmethod
    def from_abi(cls, address: str, details: Sequence[Any]) -> ArtisanRecord:
        """
        Build a record from the ``getArtisanDetails`` tuple.

        Raises:
            ArtisanNotRegistered: when the tuple describes an empty slot
                (zero registration date).
        """
        name, location, specialization, contact, verified, registered = details
        if not int(registered or 0):
            raise ArtisanNotRegistered(address)
        return cls(
            address=address,
            name=name or UNKNOWN_ARTISAN_NAME,
            location=location or UNKNOWN_LOCATION,
            specialization=specialization or DEFAULT_SPECIALIZATION,
            contact_info=contact or "",
            is_verified=bool(verified),
            registration_timestamp=int(registered or 0),
        )


@dataclass(frozen=True)
class ItemRecord:
    token_id: int
    content_pointer: str
    name: str
    description: str
    materials: str
    artisan_address: str
    owner_address: str
    creation_timestamp: int
    # Listings leave this empty unless provenance hydration was requested.
    provenance_log: tuple[str, ...] = field(default_factory=tuple)

    @property
    def created_at(self) -> datetime | None:
        return _ts(self.creation_timestamp)

    @classmethod
    def from_abi(
        cls,
        token_id: int,
        token_uri: str,
        details: Sequence[Any],
        owner: str,
        provenance: Sequence[str] = (),
        *,
        placeholders: bool = True,
    ) -> ItemRecord:
        """
        Build a record from ``tokenURI``, ``getItemDetails`` and ``ownerOf`` results.

        Empty text fields get display placeholders unless ``placeholders`` is
        false, in which case they stay exactly as stored.
        """
        name, description, materials, artisan, created = details
        if placeholders:
            name = name or UNNAMED_ITEM
            description = description or NO_DESCRIPTION
            materials = materials or MATERIALS_NOT_SPECIFIED
        return cls(
            token_id=int(token_id),
            content_pointer=token_uri or "",
            name=name or "",
            description=description or "",
            materials=materials or "",
            artisan_address=artisan,
            owner_address=owner,
            creation_timestamp=int(created or 0),
            provenance_log=tuple(provenance),
        )

    def with_owner(self, owner: str) -> ItemRecord:
        return replace(self, owner_address=owner)


@dataclass(frozen=True)
class ItemListing:
    """A listing row: an item plus its local visibility state."""

    item: ItemRecord
    is_hidden: bool = False

    @property
    def token_id(self) -> int:
        return self.item.token_id


@dataclass(frozen=True)
class ContentObject:
    pointer: str
    payload: bytes | dict[str, Any] | list[Any]


@dataclass(frozen=True)
class PinResult:
    """Outcome of a successful upload to the pinning service."""

    cid: str
    pointer: str  # "ipfs://<cid>", the only form ever persisted
    gateway_url: str


@dataclass(frozen=True)
class TxReceipt:
    tx_id: str
    confirmed_round: int
    return_value: Any = None


@dataclass(frozen=True)
class MintResult:
    token_id: int
    image: PinResult
    metadata: PinResult
    receipt: TxReceipt


def item_metadata(
    name: str,
    description: str,
    materials: str,
    image_pointer: str,
    creator: str,
    *,
    date_trait: str = "Creation Date",
    when: datetime | None = None,
) -> dict[str, Any]:
    """The JSON document pinned when an item is minted or its image replaced."""
    stamp = (when or datetime.now(timezone.utc)).isoformat()
    return {
        "name": name,
        "description": description,
        "materials": materials,
        "image": image_pointer,
        "attributes": [
            {"trait_type": "Materials", "value": materials},
            {"trait_type": "Creator", "value": creator},
            {"trait_type": date_trait, "value": stamp},
        ],
    }
