# SPDX-License-Identifier: Apache-2.0
"""Tests for address helpers, error translation and the algod handle."""

from __future__ import annotations

import pytest
from algosdk import error
from algosdk.v2client import algod

from artisanal.contracts import load_contract
from artisanal.core.constants import NFT_CONTRACT, REGISTRY_CONTRACT, ZERO_ADDRESS
from artisanal.core.errors import (
    AuthorizationError,
    CallRejected,
    LedgerUnavailable,
    ValidationError,
)
from artisanal.services.algorand import (
    AlgodHandleFactory,
    _translate,
    addr_from_mn,
    is_logic_rejection,
    short_addr,
    signer_from_mn,
    validate_address,
)
from conftest import new_account

# =============================================================================
# Address & key utilities
# =============================================================================


def test_validate_address_accepts_real_address() -> None:
    acct = new_account()
    assert validate_address(acct.address) == acct.address


@pytest.mark.parametrize("bad", [None, "", "not-an-address", "A" * 58])
def test_validate_address_rejects_malformed(bad) -> None:
    with pytest.raises(ValidationError):
        validate_address(bad, what="recipient address")


def test_validate_address_rejects_zero_address() -> None:
    with pytest.raises(ValidationError, match="zero address"):
        validate_address(ZERO_ADDRESS)


def test_signer_from_mnemonic_round_trip() -> None:
    acct = new_account()
    address, signer = signer_from_mn(acct.mnemonic)
    assert address == acct.address
    assert signer is not None
    assert addr_from_mn(acct.mnemonic) == acct.address


def test_signer_from_bad_mnemonic() -> None:
    with pytest.raises(ValidationError):
        signer_from_mn("not a real mnemonic")
    assert addr_from_mn("nope") is None
    assert addr_from_mn(None) is None


def test_short_addr() -> None:
    acct = new_account()
    assert short_addr(acct.address) == f"{acct.address[:6]}…{acct.address[-4:]}"
    assert short_addr(None) == "—"


# =============================================================================
# Error translation
# =============================================================================

_REJECTED = (
    "TransactionPool.Remember: transaction ABC: logic eval error: "
    "assert failed pc=312. Details: app=1002"
)


def test_logic_rejection_markers() -> None:
    assert is_logic_rejection(_REJECTED)
    assert is_logic_rejection("transaction rejected by ApprovalProgram")
    assert not is_logic_rejection("connection refused")
    assert not is_logic_rejection("")


def test_translate_rejected_write_is_authorization_error() -> None:
    exc = _translate(error.AlgodHTTPError(_REJECTED, 400), "mintItem", write=True)
    assert isinstance(exc, AuthorizationError)
    assert "mintItem rejected" in str(exc)
    assert "assert failed" in str(exc)


def test_translate_rejected_read_is_call_rejected() -> None:
    exc = _translate(error.AlgodHTTPError(_REJECTED, 400), "tokenURI", write=False)
    assert isinstance(exc, CallRejected)


def test_translate_transport_failure_is_ledger_unavailable() -> None:
    exc = _translate(OSError("connection refused"), "totalSupply", write=False)
    assert isinstance(exc, LedgerUnavailable)
    assert "connection refused" in str(exc)


def test_translate_abi_encoding_error_is_validation_error() -> None:
    exc = _translate(error.ABIEncodingError("uint64 overflow"), "burnToken", write=True)
    assert isinstance(exc, ValidationError)


# =============================================================================
# Contract descriptors and handles
# =============================================================================


def test_contract_descriptors_expose_required_methods() -> None:
    registry = load_contract(REGISTRY_CONTRACT)
    nft = load_contract(NFT_CONTRACT)
    registry_methods = {m.name for m in registry.methods}
    nft_methods = {m.name for m in nft.methods}
    assert {
        "registerArtisan",
        "updateArtisanInfo",
        "verifyArtisan",
        "isVerifiedArtisan",
        "getArtisanDetails",
        "getArtisanCount",
        "artisanAddresses",
        "owner",
    } <= registry_methods
    assert {
        "mintItem",
        "updateMetadata",
        "burnToken",
        "transferFrom",
        "addProvenanceRecord",
        "totalSupply",
        "tokenByIndex",
        "tokenURI",
        "ownerOf",
        "getItemDetails",
        "getProvenanceHistory",
        "balanceOf",
        "tokenOfOwnerByIndex",
    } <= nft_methods


def test_load_contract_is_cached() -> None:
    assert load_contract(NFT_CONTRACT) is load_contract(NFT_CONTRACT)


def test_load_contract_unknown_name() -> None:
    with pytest.raises(KeyError):
        load_contract("Marketplace")


async def test_handle_rejects_unknown_method_before_any_request() -> None:
    acct = new_account()
    _addr, signer = signer_from_mn(acct.mnemonic)
    client = algod.AlgodClient("a" * 64, "http://127.0.0.1:9")
    factory = AlgodHandleFactory(client, wait_rounds=2)

    handle = factory(load_contract(NFT_CONTRACT), 1002, acct.address, signer)

    assert handle.app_id == 1002
    assert handle.signer_address == acct.address
    assert handle.contract_name == NFT_CONTRACT
    with pytest.raises(ValidationError, match="no method"):
        await handle.call("listForSale", 1)
