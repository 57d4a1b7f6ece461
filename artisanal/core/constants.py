# artisanal/core/constants.py
# SPDX-License-Identifier: Apache-2.0
"""
Protocol constants, storage keys and display defaults.

This module centralizes:
  1) **Ledger constants** (zero address, confirmation rounds, ARC-4 method
     names consumed by the client).
  2) **Content store constants** (pointer scheme, Pinata endpoints).
  3) **Display defaults** substituted for sparse on-chain fields. They are
     applied exactly once, in the record deserializers of ``core.models``.

Design notes
------------
- Constants are typed ``Final`` to communicate immutability and to help
  static analyzers catch accidental reassignment.
- Method names mirror the contract ABI files shipped in
  ``artisanal/contracts``; keep both in sync when the contracts change.
"""

from typing import Final

from algosdk import encoding

# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

#: The address encoding 32 zero bytes. Never a valid artisan/owner/recipient.
ZERO_ADDRESS: Final[str] = encoding.encode_address(bytes(32))

#: Rounds to wait for a submitted group to be confirmed (≈ 4 × 3.3s).
DEFAULT_CONFIRMATION_ROUNDS: Final[int] = 4

#: Contract names as they appear in the ARC-4 descriptors.
REGISTRY_CONTRACT: Final[str] = "ArtisanRegistry"
NFT_CONTRACT: Final[str] = "ArtisanalNFT"

# ---------------------------------------------------------------------------
# Content store
# ---------------------------------------------------------------------------

#: Pointer scheme persisted on-chain and in metadata documents.
IPFS_SCHEME: Final[str] = "ipfs://"

#: Default public gateway; pointers are translated to it only at fetch time.
DEFAULT_IPFS_GATEWAY: Final[str] = "https://gateway.pinata.cloud/ipfs/"

#: Pinata pinning API.
DEFAULT_PINATA_API: Final[str] = "https://api.pinata.cloud"
PIN_FILE_PATH: Final[str] = "/pinning/pinFileToIPFS"
PIN_JSON_PATH: Final[str] = "/pinning/pinJSONToIPFS"

DEFAULT_HTTP_TIMEOUT: Final[float] = 30.0

# ---------------------------------------------------------------------------
# Local persistence
# ---------------------------------------------------------------------------

#: Namespaced key holding the JSON array of hidden token ids.
HIDDEN_ITEMS_KEY: Final[str] = "artisanal_hiddenItems"

# ---------------------------------------------------------------------------
# Display defaults for sparse on-chain fields
# ---------------------------------------------------------------------------

UNKNOWN_ARTISAN_NAME: Final[str] = "Unknown Artisan"
UNKNOWN_LOCATION: Final[str] = "Unknown Location"
DEFAULT_SPECIALIZATION: Final[str] = "Various Crafts"
UNNAMED_ITEM: Final[str] = "Unnamed Item"
NO_DESCRIPTION: Final[str] = "No description available"
MATERIALS_NOT_SPECIFIED: Final[str] = "Not specified"

# ---------------------------------------------------------------------------
# Listing defaults
# ---------------------------------------------------------------------------

DEFAULT_PAGE_SIZE: Final[int] = 10
