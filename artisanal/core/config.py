# artisanal/core/config.py
# SPDX-License-Identifier: Apache-2.0
"""
Centralized, immutable configuration for the marketplace client.

This module defines a frozen `Settings` dataclass whose fields are populated
from environment variables (loaded via python-dotenv if a `.env` file is
present). The resulting singleton `settings` is what the ops CLI hands to
`build_context()`; library code never reads `os.getenv` itself and always
receives a `Settings` instance explicitly.

Design goals
------------
- **Single source of truth**: All tunables live here.
- **Immutability**: `@dataclass(frozen=True)`; derive a variant with
  `dataclasses.replace` (see `Settings.with_deployment`).
- **Fast import**: Only dotenv load + dataclass construction at import time.
  No network calls.
- **Safe defaults**: Algonode TestNet endpoints and the public Pinata gateway.
  Secrets default to empty strings; app ids default to 0 (unset), which the
  contract gateway rejects with `ConfigurationError` on first use.

Security notes
--------------
- `WALLET_MNEMONICS` grants full control of the listed accounts. Treat `.env`
  as development convenience only and never commit it.
- `ALGOD_TOKEN` defaults to 64 "a" characters to satisfy client constructors;
  Algonode ignores it.

Deployment file
---------------
Deployment tooling writes the two application ids to `deployment.json`:

    {"artisanRegistry": 1234, "artisanalNFT": 5678}

`load_deployment()` reads it and `Settings.with_deployment()` overlays the ids
on top of the environment-derived values.

Testing
-------
Construct `Settings(...)` directly with explicit keyword arguments; the
environment only provides defaults.
"""

from __future__ import annotations

import dataclasses
import json
import os
import pathlib
from dataclasses import dataclass

from dotenv import load_dotenv

from .constants import (
    DEFAULT_CONFIRMATION_ROUNDS,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_IPFS_GATEWAY,
    DEFAULT_PINATA_API,
)
from .errors import ConfigurationError

# Pre-set env vars take precedence over `.env` values.
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw, 10)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_store_path() -> str:
    return str(pathlib.Path.home() / ".artisanal" / "profile.json")


@dataclass(frozen=True)
class Settings:
    """
    Immutable application settings.

    Each attribute is populated from the corresponding environment variable;
    when unset, a documented default is used.
    """

    # --- Algod (consensus node) endpoint ---------------------------------
    ALGOD_URL: str = os.getenv("ALGOD_URL") or "https://testnet-api.algonode.cloud"
    ALGOD_TOKEN: str = os.getenv("ALGOD_TOKEN", "a" * 64)

    # --- Remote contracts (ARC-4 application ids) ------------------------
    REGISTRY_APP_ID: int = _env_int("REGISTRY_APP_ID", 0)
    NFT_APP_ID: int = _env_int("NFT_APP_ID", 0)
    # Rounds to wait for each write to be confirmed.
    CONFIRMATION_ROUNDS: int = _env_int(
        "CONFIRMATION_ROUNDS", DEFAULT_CONFIRMATION_ROUNDS
    )

    # --- Content store ---------------------------------------------------
    IPFS_GATEWAY_URL: str = os.getenv("IPFS_GATEWAY_URL") or DEFAULT_IPFS_GATEWAY
    PINATA_API_URL: str = os.getenv("PINATA_API_URL") or DEFAULT_PINATA_API
    PINATA_API_KEY: str = os.getenv("PINATA_API_KEY", "")
    PINATA_API_SECRET: str = os.getenv("PINATA_API_SECRET", "")
    HTTP_TIMEOUT_SECONDS: float = _env_float(
        "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT
    )

    # --- Wallet ----------------------------------------------------------
    # Comma-separated 25-word mnemonics; the first one is the default account.
    WALLET_MNEMONICS: str = os.getenv("WALLET_MNEMONICS", "")

    # --- Local persistence -----------------------------------------------
    VISIBILITY_STORE_PATH: str = (
        os.getenv("VISIBILITY_STORE_PATH") or _default_store_path()
    )

    # --- Ops -------------------------------------------------------------
    DEPLOYMENT_FILE: str = os.getenv("DEPLOYMENT_FILE") or "deployment.json"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL") or "INFO"

    def mnemonics(self) -> list[str]:
        """Split `WALLET_MNEMONICS` into individual (whitespace-normalized) phrases."""
        return [
            " ".join(m.split()) for m in self.WALLET_MNEMONICS.split(",") if m.strip()
        ]

    def with_deployment(self, path: str | None = None) -> Settings:
        """Return a copy with app ids taken from a deployment file, if one exists."""
        target = pathlib.Path(path or self.DEPLOYMENT_FILE)
        if not target.exists():
            return self
        registry_id, nft_id = load_deployment(target)
        return dataclasses.replace(
            self, REGISTRY_APP_ID=registry_id, NFT_APP_ID=nft_id
        )


def load_deployment(path: str | os.PathLike[str]) -> tuple[int, int]:
    """
    Read `(registry_app_id, nft_app_id)` from a deployment JSON file.

    Raises:
        ConfigurationError: if the file is unreadable or ids are missing/invalid.
    """
    try:
        data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read deployment file {path}: {e}") from e

    try:
        registry_id = int(data["artisanRegistry"])
        nft_id = int(data["artisanalNFT"])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Deployment file {path} must define integer 'artisanRegistry' "
            f"and 'artisanalNFT' app ids"
        ) from e
    if registry_id <= 0 or nft_id <= 0:
        raise ConfigurationError(f"Deployment file {path} holds unset app ids")
    return registry_id, nft_id


# Singleton settings object imported by the CLI entrypoints.
settings = Settings()
