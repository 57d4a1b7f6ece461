# artisanal/scripts/registry_ops.py
# SPDX-License-Identifier: Apache-2.0
#
# Purpose
# -------
# Operational CLI for the artisan registry:
#   - list every registered artisan (verified or not)
#   - show one artisan's details
#   - register / update the signing account as an artisan
#   - verify an artisan (registry owner only)
#   - check whether the signing account owns the registry
#
# Usage
# -----
#   python -m artisanal.scripts.registry_ops list-artisans [--verified-only]
#   python -m artisanal.scripts.registry_ops check-artisan [--address ADDR]
#   python -m artisanal.scripts.registry_ops register-artisan --name "Ravi Kumar" \
#       --location "Mylapore" --specialization Pottery --contact ravi@example.com
#   python -m artisanal.scripts.registry_ops verify-artisan ADDR
#   python -m artisanal.scripts.registry_ops check-owner
#
# Environment (.env)
# ------------------
# ALGOD_URL, ALGOD_TOKEN, REGISTRY_APP_ID, NFT_APP_ID (or deployment.json)
# WALLET_MNEMONICS="... 25 words ..."   # first entry signs
#
# Notes
# -----
# - verify-artisan refuses unregistered addresses and is a no-op for
#   artisans that are already verified (verification cannot be undone).
# - Every write waits for confirmation before printing its txid.

from __future__ import annotations

import argparse
from dataclasses import asdict

from artisanal.context import AppContext
from artisanal.core.errors import ArtisanNotRegistered
from artisanal.core.models import ArtisanRecord
from artisanal.scripts.common import add_common_args, emit, run


def _print_artisan(rec: ArtisanRecord, heading: str | None = None) -> None:
    if heading:
        print(f"\n{heading}:")
    print(f"Address: {rec.address}")
    print(f"Name: {rec.name}")
    print(f"Location: {rec.location}")
    print(f"Specialization: {rec.specialization}")
    print(f"Contact Info: {rec.contact_info}")
    print(f"Verified: {'Yes' if rec.is_verified else 'No'}")
    registered = rec.registered_at
    print(f"Registration Date: {registered.isoformat() if registered else 'unknown'}")


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def list_artisans(ctx: AppContext, args: argparse.Namespace) -> None:
    if args.verified_only:
        records = await ctx.reader.list_artisans()
    else:
        records = await ctx.reader.list_registered_artisans()

    def _human() -> None:
        if not records:
            print("No artisans registered yet.")
            return
        print(f"Total artisans: {len(records)}")
        for n, rec in enumerate(records, start=1):
            _print_artisan(rec, f"Artisan #{n}")

    emit(args, [asdict(r) for r in records], _human)


async def check_artisan(ctx: AppContext, args: argparse.Namespace) -> None:
    address = args.address or await ctx.wallet.current_account()
    try:
        rec = await ctx.reader.get_artisan(address)
    except ArtisanNotRegistered:
        emit(
            args,
            {"address": address, "registered": False},
            lambda: print("This address is not registered as an artisan."),
        )
        return
    emit(args, {"registered": True, **asdict(rec)}, lambda: _print_artisan(rec))


async def register_artisan(ctx: AppContext, args: argparse.Namespace) -> None:
    receipt = await ctx.mutations.register_artisan(
        args.name, args.location, args.specialization, args.contact
    )
    emit(
        args,
        asdict(receipt),
        lambda: print(f"✅ Registration confirmed — txid: {receipt.tx_id}"),
    )


async def verify_artisan(ctx: AppContext, args: argparse.Namespace) -> None:
    rec = await ctx.reader.get_artisan(args.address)
    if rec.is_verified:
        emit(
            args,
            {"address": rec.address, "already_verified": True},
            lambda: print("Artisan is already verified."),
        )
        return
    receipt = await ctx.mutations.verify_artisan(args.address)

    def _human() -> None:
        print(f"✅ Artisan verified — txid: {receipt.tx_id}")
        print("The artisan can now mint NFTs for their artisanal goods.")

    emit(args, asdict(receipt), _human)


async def check_owner(ctx: AppContext, args: argparse.Namespace) -> None:
    me = await ctx.wallet.current_account()
    owner = await ctx.reader.registry_owner()
    is_owner = owner == me

    def _human() -> None:
        print(f"Registry owner address: {owner}")
        print(f"Your current address:   {me}")
        if is_owner:
            print("You ARE the registry owner.")
        else:
            print("You are NOT the registry owner.")
            print("To verify artisans, use the account that deployed the registry.")

    emit(args, {"owner": owner, "address": me, "is_owner": is_owner}, _human)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

_COMMANDS = {
    "list-artisans": list_artisans,
    "check-artisan": check_artisan,
    "register-artisan": register_artisan,
    "verify-artisan": verify_artisan,
    "check-owner": check_owner,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="registry_ops",
        description="Artisan registry operations (list, check, register, verify).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_common_args(ap)
    sub = ap.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list-artisans", help="List registered artisans")
    ls.add_argument(
        "--verified-only", action="store_true", help="Only show verified artisans"
    )

    ck = sub.add_parser("check-artisan", help="Show one artisan's details")
    ck.add_argument(
        "--address", default=None, help="Artisan address (defaults to the signer)"
    )

    reg = sub.add_parser(
        "register-artisan", help="Register (or update) the signer as an artisan"
    )
    reg.add_argument("--name", required=True)
    reg.add_argument("--location", required=True)
    reg.add_argument("--specialization", required=True)
    reg.add_argument("--contact", required=True, help="Contact information")

    ver = sub.add_parser("verify-artisan", help="Verify an artisan (owner only)")
    ver.add_argument("address", help="Address of the artisan to verify")

    sub.add_parser("check-owner", help="Check whether the signer owns the registry")
    return ap


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    handler = _COMMANDS[args.cmd]
    run(args, lambda ctx: handler(ctx, args))


if __name__ == "__main__":
    main()
