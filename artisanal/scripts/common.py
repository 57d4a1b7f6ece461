# artisanal/scripts/common.py
# SPDX-License-Identifier: Apache-2.0
#
# Purpose
# -------
# Shared plumbing for the ops CLIs (registry_ops, item_ops):
#   * logging setup
#   * settings resolution (.env + optional deployment.json overlay)
#   * building an AppContext with the operator's signing key
#   * running a coroutine and turning client errors into one-line exits
#
# Conventions
# -----------
# * App ids come from REGISTRY_APP_ID / NFT_APP_ID or from deployment.json
#   ({"artisanRegistry": <id>, "artisanalNFT": <id>}); the file wins when present.
# * The signing account is the first entry of WALLET_MNEMONICS unless
#   --mnemonic is passed explicitly.
#
# Security
# --------
# * Mnemonics grant full control of funds; never commit them to VCS.
# * Secrets are never echoed or logged.

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from artisanal.context import AppContext, build_context
from artisanal.core.config import Settings, settings
from artisanal.core.errors import ArtisanalError
from artisanal.services.wallet import KeyringWallet

T = TypeVar("T")


def add_common_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--deployment",
        default=settings.DEPLOYMENT_FILE,
        help="deployment.json holding the two application ids (used if it exists)",
    )
    ap.add_argument(
        "--mnemonic",
        default=None,
        help="25-word mnemonic of the signing account (overrides WALLET_MNEMONICS)",
    )
    ap.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    ap.add_argument(
        "--log-level", default=settings.LOG_LEVEL, help="Python logging level"
    )


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s: %(message)s",
    )


def resolve_settings(args: argparse.Namespace) -> Settings:
    resolved = settings.with_deployment(args.deployment)
    if args.mnemonic:
        resolved = dataclasses.replace(resolved, WALLET_MNEMONICS=args.mnemonic)
    return resolved


def open_context(args: argparse.Namespace) -> AppContext:
    cfg = resolve_settings(args)
    mnemonics = cfg.mnemonics()
    provider = KeyringWallet(mnemonics) if mnemonics else None
    return build_context(cfg, provider=provider)


def emit(args: argparse.Namespace, payload: Any, human: Callable[[], None]) -> None:
    """Print `payload` as JSON with --json, otherwise call the human renderer."""
    if args.json:
        print(json.dumps(payload, indent=2, default=str))
    else:
        human()


def run(args: argparse.Namespace, op: Callable[[AppContext], Awaitable[T]]) -> T:
    """Run `op` inside a fresh context; client errors become a one-line SystemExit."""
    setup_logging(args.log_level)

    async def _main() -> T:
        async with open_context(args) as ctx:
            return await op(ctx)

    try:
        return asyncio.run(_main())
    except ArtisanalError as e:
        raise SystemExit(f"{args.cmd} failed: {e}") from e
