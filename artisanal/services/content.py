# artisanal/services/content.py
# SPDX-License-Identifier: Apache-2.0
"""
Content resolver for off-chain item metadata and images.

Pointers are exchanged and persisted in ``ipfs://<cid>[/path]`` form and are
translated to ``<gateway>/<cid>[/path]`` only at fetch time. Uploads go to the
Pinata pinning API and return a `PinResult` whose ``pointer`` is the form to
persist.

Content is addressed by hash: the same pointer always yields the same bytes,
so fetched objects are cached per pointer for the lifetime of the resolver
and never invalidated.

No retries happen here; callers decide whether to retry. Fetch failures raise
`ContentUnavailable` and should degrade to a placeholder
(see `resolve_or_none`), upload failures raise `UploadFailed` with the
backend's message.

Example:
    ```python
    async with ContentResolver.from_settings(settings) as content:
        pin = await content.upload(image_bytes, "image/png", "pot.png")
        meta = await content.resolve("ipfs://Qm...")
    ```
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from artisanal.core.constants import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_IPFS_GATEWAY,
    DEFAULT_PINATA_API,
    IPFS_SCHEME,
    PIN_FILE_PATH,
    PIN_JSON_PATH,
)
from artisanal.core.errors import ContentUnavailable, UploadFailed
from artisanal.core.models import ContentObject, PinResult

if TYPE_CHECKING:
    from types import TracebackType

    from artisanal.core.config import Settings

log = logging.getLogger(__name__)

_JSON_TYPES = ("application/json", "text/json")


def _content_type(resp: httpx.Response) -> str:
    return resp.headers.get("content-type", "").split(";")[0].strip().lower()


class ContentResolver:
    """Async gateway/pinning client with a per-pointer in-memory cache."""

    def __init__(
        self,
        *,
        gateway_url: str = DEFAULT_IPFS_GATEWAY,
        api_url: str = DEFAULT_PINATA_API,
        api_key: str = "",
        api_secret: str = "",
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        owns_client: bool | None = None,
    ) -> None:
        self._gateway = gateway_url.rstrip("/")
        self._api = api_url.rstrip("/")
        self._api_key = api_key
        self._api_secret = api_secret
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None if owns_client is None else owns_client
        self._cache: dict[str, ContentObject] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        *,
        owns_client: bool | None = None,
    ) -> ContentResolver:
        return cls(
            gateway_url=settings.IPFS_GATEWAY_URL,
            api_url=settings.PINATA_API_URL,
            api_key=settings.PINATA_API_KEY,
            api_secret=settings.PINATA_API_SECRET,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            client=client,
            owns_client=owns_client,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the owned connection pool. Safe to call multiple times."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ContentResolver:
        self._http()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Pointers
    # ------------------------------------------------------------------

    @staticmethod
    def pointer_for(cid: str) -> str:
        return f"{IPFS_SCHEME}{cid}"

    def to_gateway_url(self, pointer: str) -> str:
        """Translate a content pointer (``ipfs://``, bare CID or http(s) URL) to a fetchable URL."""
        p = (pointer or "").strip()
        if p.startswith(("http://", "https://")):
            return p
        if p.startswith(IPFS_SCHEME):
            p = p[len(IPFS_SCHEME) :]
            # Some tools emit ipfs://ipfs/<cid>
            if p.startswith("ipfs/"):
                p = p[len("ipfs/") :]
        p = p.lstrip("/")
        if not p:
            raise ContentUnavailable(pointer, "empty content pointer")
        return f"{self._gateway}/{p}"

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(pointer: str, resp: httpx.Response) -> bytes | dict[str, Any] | list[Any]:
        ctype = _content_type(resp)
        if ctype in _JSON_TYPES or ctype.endswith("+json"):
            try:
                return resp.json()
            except ValueError as e:
                raise ContentUnavailable(pointer, f"malformed JSON: {e}") from e
        if ctype == "text/plain":
            # Gateways sometimes serve pinned JSON documents as text.
            try:
                doc = json.loads(resp.content)
            except ValueError:
                return resp.content
            if isinstance(doc, (dict, list)):
                return doc
        return resp.content

    async def resolve(self, pointer: str) -> ContentObject:
        """Fetch (or return the cached) content behind `pointer`."""
        cached = self._cache.get(pointer)
        if cached is not None:
            return cached

        url = self.to_gateway_url(pointer)
        try:
            resp = await self._http().get(url, follow_redirects=True)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ContentUnavailable(
                pointer, f"gateway answered HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ContentUnavailable(pointer, str(e) or e.__class__.__name__) from e

        obj = ContentObject(pointer=pointer, payload=self._decode(pointer, resp))
        self._cache[pointer] = obj
        log.debug("Fetched %s (%s)", pointer, _content_type(resp) or "unknown type")
        return obj

    async def resolve_or_none(self, pointer: str) -> ContentObject | None:
        """Placeholder-friendly `resolve`: ``None`` instead of `ContentUnavailable`."""
        try:
            return await self.resolve(pointer)
        except ContentUnavailable as e:
            log.warning("%s", e)
            return None

    async def fetch_metadata(self, pointer: str) -> dict[str, Any]:
        """Resolve a metadata document; anything but a JSON object is unavailable."""
        obj = await self.resolve(pointer)
        if not isinstance(obj.payload, dict):
            raise ContentUnavailable(pointer, "not a JSON metadata document")
        return obj.payload

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if not (self._api_key and self._api_secret):
            raise UploadFailed(
                "Pinata credentials are not configured (PINATA_API_KEY / PINATA_API_SECRET)"
            )
        return {
            "pinata_api_key": self._api_key,
            "pinata_secret_api_key": self._api_secret,
        }

    async def _pin(self, path: str, **request: Any) -> PinResult:
        headers = self._auth_headers()
        try:
            resp = await self._http().post(f"{self._api}{path}", headers=headers, **request)
            resp.raise_for_status()
            cid = str(resp.json()["IpfsHash"])
        except httpx.HTTPStatusError as e:
            detail = e.response.text.strip() or e.response.reason_phrase
            raise UploadFailed(
                f"Pinning failed with HTTP {e.response.status_code}: {detail}"
            ) from e
        except httpx.HTTPError as e:
            raise UploadFailed(f"Pinning failed: {str(e) or e.__class__.__name__}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise UploadFailed(f"Unexpected pinning response: {e}") from e

        result = PinResult(
            cid=cid,
            pointer=self.pointer_for(cid),
            gateway_url=f"{self._gateway}/{cid}",
        )
        log.info("Pinned %s", result.pointer)
        return result

    async def upload(
        self,
        data: bytes,
        content_type: str = "application/octet-stream",
        filename: str = "upload",
    ) -> PinResult:
        """Pin raw bytes (multipart upload)."""
        return await self._pin(
            PIN_FILE_PATH, files={"file": (filename, data, content_type)}
        )

    async def upload_json(self, document: dict[str, Any]) -> PinResult:
        """Pin a JSON document."""
        return await self._pin(PIN_JSON_PATH, json=document)
