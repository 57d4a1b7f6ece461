# artisanal/services/visibility.py
# SPDX-License-Identifier: Apache-2.0
"""
Local visibility overlay: a per-profile set of token ids the user chose to hide.

The overlay is a display filter only. It never touches the ledger, ownership
or anybody else's view. It is persisted immediately on every change under a
single namespaced key holding a JSON array of token id strings.

Failure policy
--------------
Persistence failures never propagate; they are logged. Reads fall back to
"nothing hidden". A stored value that does not decode counts as an empty
array for `hide()`/`show()` too, so the next change replaces it with a fresh
one. `hide()`/`show()` return ``False`` when the store itself fails.
"""

from __future__ import annotations

import json
import logging
import os
import pathlib
import tempfile
from typing import Protocol

from artisanal.core.constants import HIDDEN_ITEMS_KEY

log = logging.getLogger(__name__)

# Failures of the store or of decoding its content.
_STORE_ERRORS = (OSError, ValueError, TypeError)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store; contents vanish with the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """
    Key-value store persisted as one JSON object in a profile file.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash never leaves a half-written profile behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = pathlib.Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            pathlib.Path(tmp).unlink(missing_ok=True)
            raise


class VisibilityOverlay:
    def __init__(self, store: KeyValueStore, key: str = HIDDEN_ITEMS_KEY) -> None:
        self._store = store
        self._key = key

    def _read(self) -> list[str]:
        raw = self._store.get(self._key)
        if not raw:
            return []
        ids = json.loads(raw)
        if not isinstance(ids, list):
            raise ValueError(f"{self._key} does not hold a JSON array")
        return [str(i) for i in ids]

    def _write(self, ids: list[str]) -> None:
        self._store.set(self._key, json.dumps(ids))

    def _current(self) -> list[str]:
        try:
            return self._read()
        except (ValueError, TypeError):
            log.warning("Discarding undecodable %s value", self._key)
            return []

    def hidden_ids(self) -> list[str]:
        """Hidden token ids in the order they were hidden."""
        try:
            return self._read()
        except _STORE_ERRORS:
            log.exception("Error reading hidden items")
            return []

    def is_hidden(self, token_id: int | str) -> bool:
        return str(token_id) in self.hidden_ids()

    def hide(self, token_id: int | str) -> bool:
        tid = str(token_id)
        try:
            ids = self._current()
            if tid not in ids:
                self._write([*ids, tid])
        except _STORE_ERRORS:
            log.exception("Error hiding item %s", tid)
            return False
        return True

    def show(self, token_id: int | str) -> bool:
        tid = str(token_id)
        try:
            ids = self._current()
            if tid in ids:
                self._write([i for i in ids if i != tid])
        except _STORE_ERRORS:
            log.exception("Error showing item %s", tid)
            return False
        return True
