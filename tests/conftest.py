# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures for the artisanal client tests.

Provides an in-memory ledger implementing the registry and item contract
rules behind the `ContractHandle` interface, a fake pinning service served
through `httpx.MockTransport`, and a factory for per-account contexts that
all share the same ledger and content store.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio
from algosdk import abi, account, mnemonic
from algosdk.atomic_transaction_composer import TransactionSigner

from artisanal.context import AppContext, build_context
from artisanal.core.config import Settings
from artisanal.core.errors import AuthorizationError, CallRejected
from artisanal.core.models import TxReceipt
from artisanal.services.visibility import MemoryStore
from artisanal.services.wallet import KeyringWallet

REGISTRY_APP_ID = 1001
NFT_APP_ID = 1002
GATEWAY = "https://gateway.test/ipfs/"
PINATA_API = "https://pinata.test"
GENESIS_TS = 1_700_000_000

# =============================================================================
# Accounts
# =============================================================================


@dataclass(frozen=True)
class Account:
    address: str
    mnemonic: str


def new_account() -> Account:
    sk, address = account.generate_account()
    return Account(address=address, mnemonic=mnemonic.from_private_key(sk))


# =============================================================================
# Fake ledger
# =============================================================================


@dataclass
class _Artisan:
    name: str
    location: str
    specialization: str
    contact_info: str
    registered: int
    verified: bool = False


@dataclass
class _Token:
    uri: str
    name: str
    description: str
    materials: str
    artisan: str
    owner: str
    created: int
    provenance: list[str] = field(default_factory=list)


class FakeLedger:
    """In-memory state of both applications plus a log of confirmed writes."""

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self.artisans: dict[str, _Artisan] = {}
        self.artisan_order: list[str] = []
        self.tokens: dict[int, _Token] = {}
        self.next_token_id = 0
        self.round = 1000
        self.clock = GENESIS_TS
        self.submissions: list[tuple[str, str, tuple[Any, ...]]] = []
        self.read_count = 0
        # Writes wait on this event when set; lets tests hold a write in flight.
        self.write_gate: asyncio.Event | None = None
        self._faults: list[tuple[str, Callable[[tuple[Any, ...]], bool], Exception]] = []

    def fail(
        self,
        method: str,
        exc: Exception,
        when: Callable[[tuple[Any, ...]], bool] = lambda _args: True,
    ) -> None:
        """Make `method` raise `exc` whenever `when(args)` holds."""
        self._faults.append((method, when, exc))

    def _check_faults(self, method: str, args: tuple[Any, ...]) -> None:
        for name, when, exc in self._faults:
            if name == method and when(args):
                raise exc

    def methods_submitted(self) -> list[str]:
        return [method for _sender, method, _args in self.submissions]

    def _tick(self) -> int:
        self.clock += 60
        return self.clock

    # --- reads ----------------------------------------------------------

    def _token(self, token_id: int) -> _Token:
        tok = self.tokens.get(int(token_id))
        if tok is None:
            raise CallRejected(f"logic eval error: assert failed (token {token_id} does not exist)")
        return tok

    def read(self, contract: str, method: str, args: tuple[Any, ...]) -> Any:
        self.read_count += 1
        self._check_faults(method, args)
        if contract == "ArtisanRegistry":
            return self._read_registry(method, args)
        return self._read_nft(method, args)

    def _read_registry(self, method: str, args: tuple[Any, ...]) -> Any:
        if method == "owner":
            return self.owner
        if method == "getArtisanCount":
            return len(self.artisan_order)
        if method == "artisanAddresses":
            (index,) = args
            if not 0 <= index < len(self.artisan_order):
                raise CallRejected("logic eval error: index out of range")
            return self.artisan_order[index]
        if method == "getArtisanDetails":
            rec = self.artisans.get(args[0])
            if rec is None:
                # Unregistered addresses read as an empty slot.
                return ["", "", "", "", False, 0]
            return [
                rec.name,
                rec.location,
                rec.specialization,
                rec.contact_info,
                rec.verified,
                rec.registered,
            ]
        if method == "isVerifiedArtisan":
            rec = self.artisans.get(args[0])
            return bool(rec and rec.verified)
        raise AssertionError(f"unexpected registry read {method}")

    def _live_ids(self) -> list[int]:
        return sorted(self.tokens)

    def _read_nft(self, method: str, args: tuple[Any, ...]) -> Any:
        if method == "totalSupply":
            return len(self.tokens)
        if method == "tokenByIndex":
            (index,) = args
            live = self._live_ids()
            if not 0 <= index < len(live):
                raise CallRejected("logic eval error: index out of range")
            return live[index]
        if method == "tokenURI":
            return self._token(args[0]).uri
        if method == "ownerOf":
            return self._token(args[0]).owner
        if method == "getItemDetails":
            tok = self._token(args[0])
            return [tok.name, tok.description, tok.materials, tok.artisan, tok.created]
        if method == "getProvenanceHistory":
            return list(self._token(args[0]).provenance)
        if method == "balanceOf":
            return sum(1 for t in self.tokens.values() if t.owner == args[0])
        if method == "tokenOfOwnerByIndex":
            owner, index = args
            owned = [tid for tid in self._live_ids() if self.tokens[tid].owner == owner]
            if not 0 <= index < len(owned):
                raise CallRejected("logic eval error: owner index out of range")
            return owned[index]
        raise AssertionError(f"unexpected nft read {method}")

    # --- writes ---------------------------------------------------------

    @staticmethod
    def _reject(reason: str) -> AuthorizationError:
        return AuthorizationError(f"logic eval error: assert failed: {reason}")

    async def write(
        self, contract: str, sender: str, method: str, args: tuple[Any, ...]
    ) -> TxReceipt:
        if self.write_gate is not None:
            await self.write_gate.wait()
        self._check_faults(method, args)
        if contract == "ArtisanRegistry":
            value = self._write_registry(sender, method, args)
        else:
            value = self._write_nft(sender, method, args)
        self.submissions.append((sender, method, args))
        self.round += 1
        return TxReceipt(
            tx_id=f"TX{len(self.submissions):04d}",
            confirmed_round=self.round,
            return_value=value,
        )

    def _write_registry(self, sender: str, method: str, args: tuple[Any, ...]) -> Any:
        if method in ("registerArtisan", "updateArtisanInfo"):
            name, location, specialization, contact = args
            rec = self.artisans.get(sender)
            if rec is None:
                if method == "updateArtisanInfo":
                    raise self._reject("Artisan not registered")
                self.artisans[sender] = _Artisan(
                    name, location, specialization, contact, registered=self._tick()
                )
                self.artisan_order.append(sender)
            else:
                rec.name, rec.location = name, location
                rec.specialization, rec.contact_info = specialization, contact
            return None
        if method == "verifyArtisan":
            if sender != self.owner:
                raise self._reject("Only owner can verify artisans")
            rec = self.artisans.get(args[0])
            if rec is None:
                raise self._reject("Artisan not registered")
            rec.verified = True
            return None
        raise AssertionError(f"unexpected registry write {method}")

    def _write_nft(self, sender: str, method: str, args: tuple[Any, ...]) -> Any:
        if method == "mintItem":
            to, uri, name, description, materials = args
            rec = self.artisans.get(sender)
            if rec is None or not rec.verified:
                raise self._reject("Only verified artisans can mint")
            token_id = self.next_token_id
            self.next_token_id += 1
            self.tokens[token_id] = _Token(
                uri=uri,
                name=name,
                description=description,
                materials=materials,
                artisan=sender,
                owner=to,
                created=self._tick(),
                provenance=[f"Created by artisan {sender}"],
            )
            return token_id

        token_id = int(args[0]) if method != "transferFrom" else int(args[2])
        tok = self.tokens.get(token_id)
        if tok is None:
            raise self._reject("Token does not exist")

        if method == "updateMetadata":
            _tid, uri, name, description, materials = args
            if sender not in (tok.owner, tok.artisan):
                raise self._reject("Not authorized")
            tok.uri, tok.name = uri, name
            tok.description, tok.materials = description, materials
            return None
        if method == "addProvenanceRecord":
            _tid, record = args
            if sender not in (tok.owner, tok.artisan):
                raise self._reject("Not authorized")
            tok.provenance.append(record)
            return None
        if method == "burnToken":
            if sender != tok.owner:
                raise self._reject("Caller is not owner")
            del self.tokens[token_id]
            return None
        if method == "transferFrom":
            from_, to, _tid = args
            if sender != tok.owner or from_ != tok.owner:
                raise self._reject("Caller is not owner")
            tok.owner = to
            return None
        raise AssertionError(f"unexpected nft write {method}")


class FakeHandle:
    def __init__(
        self, ledger: FakeLedger, contract: abi.Contract, app_id: int, sender: str
    ) -> None:
        self._ledger = ledger
        self._contract = contract
        self.app_id = app_id
        self.signer_address = sender

    @property
    def contract_name(self) -> str:
        return self._contract.name

    async def call(self, method: str, *args: Any) -> Any:
        await asyncio.sleep(0)
        return self._ledger.read(self.contract_name, method, args)

    async def transact(self, method: str, *args: Any) -> TxReceipt:
        await asyncio.sleep(0)
        return await self._ledger.write(
            self.contract_name, self.signer_address, method, args
        )


class FakeHandleFactory:
    """Handle factory recording every handle it builds."""

    def __init__(self, ledger: FakeLedger) -> None:
        self._ledger = ledger
        self.built: list[FakeHandle] = []

    def __call__(
        self,
        contract: abi.Contract,
        app_id: int,
        sender: str,
        signer: TransactionSigner,
    ) -> FakeHandle:
        handle = FakeHandle(self._ledger, contract, app_id, sender)
        self.built.append(handle)
        return handle


# =============================================================================
# Fake pinning service and gateway
# =============================================================================


class FakePinata:
    """Pinata API + gateway double for `httpx.MockTransport`."""

    def __init__(self) -> None:
        self.pinned: dict[str, tuple[bytes, str]] = {}
        self.requests: list[httpx.Request] = []
        self.fail_with: tuple[int, str] | None = None
        self.fail_json_with: tuple[int, str] | None = None

    def _cid(self) -> str:
        return f"bafyfake{len(self.pinned):04d}"

    def pin_json(self, document: Any) -> str:
        cid = self._cid()
        self.pinned[cid] = (json.dumps(document).encode(), "application/json")
        return cid

    def gets(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST":
            if self.fail_with is not None:
                status, text = self.fail_with
                return httpx.Response(status, text=text)
            if path.endswith("/pinJSONToIPFS"):
                if self.fail_json_with is not None:
                    status, text = self.fail_json_with
                    return httpx.Response(status, text=text)
                cid = self.pin_json(json.loads(request.content))
            elif path.endswith("/pinFileToIPFS"):
                cid = self._cid()
                self.pinned[cid] = (request.content, "application/octet-stream")
            else:
                return httpx.Response(404, text="unknown endpoint")
            return httpx.Response(200, json={"IpfsHash": cid, "PinSize": 1})

        cid = path.rsplit("/", 1)[-1]
        if cid not in self.pinned:
            return httpx.Response(404, text="not found")
        body, ctype = self.pinned[cid]
        return httpx.Response(200, content=body, headers={"content-type": ctype})


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def owner() -> Account:
    return new_account()


@pytest.fixture
def ravi() -> Account:
    return new_account()


@pytest.fixture
def priya() -> Account:
    return new_account()


@pytest.fixture
def buyer() -> Account:
    return new_account()


@pytest.fixture
def ledger(owner: Account) -> FakeLedger:
    return FakeLedger(owner=owner.address)


@pytest.fixture
def factory(ledger: FakeLedger) -> FakeHandleFactory:
    return FakeHandleFactory(ledger)


@pytest.fixture
def pinata() -> FakePinata:
    return FakePinata()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        REGISTRY_APP_ID=REGISTRY_APP_ID,
        NFT_APP_ID=NFT_APP_ID,
        IPFS_GATEWAY_URL=GATEWAY,
        PINATA_API_URL=PINATA_API,
        PINATA_API_KEY="test-key",
        PINATA_API_SECRET="test-secret",
        WALLET_MNEMONICS="",
        VISIBILITY_STORE_PATH=str(tmp_path / "profile.json"),
    )


@pytest_asyncio.fixture
async def http_client(pinata: FakePinata):
    async with httpx.AsyncClient(transport=httpx.MockTransport(pinata.handler)) as client:
        yield client


@pytest.fixture
def make_context(
    settings: Settings, factory: FakeHandleFactory, http_client: httpx.AsyncClient
) -> Callable[..., AppContext]:
    """Build a context signing as `acct`, sharing the ledger and content store."""

    def _make(acct: Account | None = None, **overrides: Any) -> AppContext:
        provider = KeyringWallet([acct.mnemonic]) if acct is not None else None
        options: dict[str, Any] = {
            "provider": provider,
            "store": MemoryStore(),
            "handle_factory": factory,
            "http_client": http_client,
        }
        options.update(overrides)
        return build_context(settings, **options)

    return _make


@pytest.fixture
def owner_ctx(make_context, owner: Account) -> AppContext:
    return make_context(owner)


@pytest.fixture
def ravi_ctx(make_context, ravi: Account) -> AppContext:
    return make_context(ravi)


@pytest.fixture
def onboard(owner_ctx: AppContext) -> Callable[..., Awaitable[None]]:
    """Register the context's account as an artisan and have the owner verify it."""

    async def _onboard(
        ctx: AppContext,
        name: str = "Ravi Kumar",
        location: str = "Mylapore",
        specialization: str = "Pottery",
        contact: str = "ravi@x.com",
    ) -> None:
        await ctx.mutations.register_artisan(name, location, specialization, contact)
        address = await ctx.wallet.current_account()
        await owner_ctx.mutations.verify_artisan(address)

    return _onboard


@pytest.fixture
def mint(onboard) -> Callable[..., Awaitable[int]]:
    """Mint one item as `ctx` (onboarding it first unless told otherwise)."""

    async def _mint(
        ctx: AppContext,
        name: str = "Clay Pot",
        *,
        materials: str = "Clay",
        register: bool = False,
    ) -> int:
        if register:
            await onboard(ctx)
        result = await ctx.mutations.mint_item(
            b"\x89PNG fake image " + name.encode(),
            name,
            f"Hand-thrown {name.lower()}",
            materials,
            content_type="image/png",
            filename="pot.png",
        )
        return result.token_id

    return _mint
