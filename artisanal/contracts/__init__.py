# artisanal/contracts/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""ARC-4 descriptors of the two remote applications, shipped as package data."""

from __future__ import annotations

from functools import cache
from importlib import resources

from algosdk import abi

_FILES = {
    "ArtisanRegistry": "artisan_registry.arc4.json",
    "ArtisanalNFT": "artisanal_nft.arc4.json",
}


@cache
def load_contract(name: str) -> abi.Contract:
    """Return the parsed `algosdk.abi.Contract` for a known contract name."""
    try:
        filename = _FILES[name]
    except KeyError:
        raise KeyError(f"Unknown contract descriptor: {name}") from None
    text = resources.files(__name__).joinpath(filename).read_text(encoding="utf-8")
    return abi.Contract.from_json(text)


__all__ = ["load_contract"]
