# artisanal/scripts/item_ops.py
# SPDX-License-Identifier: Apache-2.0
#
# Purpose
# -------
# Operational CLI for marketplace items:
#   - browse the marketplace page by page (hidden items filtered locally)
#   - list items by artisan, by owner, or held by the signer
#   - show one item with its provenance log and metadata
#   - hide/show items in the local visibility overlay (no ledger effect)
#   - mint, add provenance, transfer and burn (signed by the operator)
#
# Usage
# -----
#   python -m artisanal.scripts.item_ops list-items --offset 0 --limit 10 [--include-hidden]
#   python -m artisanal.scripts.item_ops show-item 3
#   python -m artisanal.scripts.item_ops hide 3
#   python -m artisanal.scripts.item_ops mint --image pot.png --name "Clay Pot" \
#       --description "Hand-thrown" --materials Clay
#   python -m artisanal.scripts.item_ops burn 3 --yes
#
# Output
# ------
# Human-readable by default, JSON with --json (pipe to `jq`).

from __future__ import annotations

import argparse
import mimetypes
import pathlib
from dataclasses import asdict
from typing import Any

from artisanal.context import AppContext
from artisanal.core.constants import DEFAULT_PAGE_SIZE
from artisanal.core.models import ItemListing, ItemRecord
from artisanal.scripts.common import add_common_args, emit, run
from artisanal.services.algorand import short_addr


def _non_negative(value: str) -> int:
    """argparse type: integer >= 0."""
    try:
        iv = int(value, 10)
    except ValueError as e:
        raise argparse.ArgumentTypeError("must be an integer") from e
    if iv < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return iv


def _row(listing: ItemListing) -> dict[str, Any]:
    return {**asdict(listing.item), "is_hidden": listing.is_hidden}


def _print_rows(rows: list[ItemListing]) -> None:
    if not rows:
        print("No items found.")
        return
    for r in rows:
        flag = " [hidden]" if r.is_hidden else ""
        item = r.item
        print(
            f"#{item.token_id:<5} {item.name}{flag} — {item.materials} — "
            f"artisan {short_addr(item.artisan_address)}, owner {short_addr(item.owner_address)}"
        )


def _print_item(item: ItemRecord, metadata: Any) -> None:
    print(f"Token ID: {item.token_id}")
    print(f"Name: {item.name}")
    print(f"Description: {item.description}")
    print(f"Materials: {item.materials}")
    print(f"Artisan: {item.artisan_address}")
    print(f"Owner: {item.owner_address}")
    created = item.created_at
    print(f"Created: {created.isoformat() if created else 'unknown'}")
    print(f"Token URI: {item.content_pointer}")
    if isinstance(metadata, dict) and metadata.get("image"):
        print(f"Image: {metadata['image']}")
    elif metadata is None:
        print("Image: (metadata unavailable)")
    print("Provenance:")
    for n, entry in enumerate(item.provenance_log, start=1):
        print(f"  {n}. {entry}")


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def list_items(ctx: AppContext, args: argparse.Namespace) -> None:
    rows = await ctx.reader.list_items(args.offset, args.limit, args.include_hidden)
    emit(args, [_row(r) for r in rows], lambda: _print_rows(rows))


async def by_artisan(ctx: AppContext, args: argparse.Namespace) -> None:
    rows = await ctx.reader.list_items_by_artisan(args.address)
    emit(args, [_row(r) for r in rows], lambda: _print_rows(rows))


async def by_owner(ctx: AppContext, args: argparse.Namespace) -> None:
    rows = await ctx.reader.list_items_by_owner(args.address)
    emit(args, [_row(r) for r in rows], lambda: _print_rows(rows))


async def mine(ctx: AppContext, args: argparse.Namespace) -> None:
    items = await ctx.reader.list_my_items()
    hidden = set(ctx.overlay.hidden_ids())
    rows = [ItemListing(item=i, is_hidden=str(i.token_id) in hidden) for i in items]
    emit(args, [_row(r) for r in rows], lambda: _print_rows(rows))


async def show_item(ctx: AppContext, args: argparse.Namespace) -> None:
    item = await ctx.reader.get_item(args.token_id)
    obj = await ctx.content.resolve_or_none(item.content_pointer)
    metadata = obj.payload if obj is not None and not isinstance(obj.payload, bytes) else None
    emit(
        args,
        {**asdict(item), "metadata": metadata},
        lambda: _print_item(item, metadata),
    )


async def hide(ctx: AppContext, args: argparse.Namespace) -> None:
    ok = ctx.overlay.hide(args.token_id)
    if not ok:
        raise SystemExit("Could not persist the visibility preference")
    emit(args, {"token_id": args.token_id, "hidden": True}, lambda: print("Hidden."))


async def show(ctx: AppContext, args: argparse.Namespace) -> None:
    ok = ctx.overlay.show(args.token_id)
    if not ok:
        raise SystemExit("Could not persist the visibility preference")
    emit(args, {"token_id": args.token_id, "hidden": False}, lambda: print("Visible."))


async def mint(ctx: AppContext, args: argparse.Namespace) -> None:
    path = pathlib.Path(args.image)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SystemExit(f"Cannot read image {path}: {e}") from e
    ctype = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    result = await ctx.mutations.mint_item(
        data,
        args.name,
        args.description,
        args.materials,
        content_type=ctype,
        filename=path.name,
    )
    emit(
        args,
        asdict(result),
        lambda: print(
            f"✅ Minted item #{result.token_id} ({result.metadata.pointer}) — "
            f"txid: {result.receipt.tx_id}"
        ),
    )


async def add_provenance(ctx: AppContext, args: argparse.Namespace) -> None:
    receipt = await ctx.mutations.add_provenance_record(args.token_id, args.record)
    emit(args, asdict(receipt), lambda: print(f"✅ Recorded — txid: {receipt.tx_id}"))


async def transfer(ctx: AppContext, args: argparse.Namespace) -> None:
    receipt = await ctx.mutations.transfer(args.token_id, args.to)
    emit(
        args, asdict(receipt), lambda: print(f"✅ Transferred — txid: {receipt.tx_id}")
    )


async def burn(ctx: AppContext, args: argparse.Namespace) -> None:
    if not args.yes:
        raise SystemExit("Burning is irreversible. Re-run with --yes to confirm.")
    receipt = await ctx.mutations.burn_item(args.token_id)
    emit(args, asdict(receipt), lambda: print(f"🔥 Burned — txid: {receipt.tx_id}"))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

_COMMANDS = {
    "list-items": list_items,
    "by-artisan": by_artisan,
    "by-owner": by_owner,
    "mine": mine,
    "show-item": show_item,
    "hide": hide,
    "show": show,
    "mint": mint,
    "add-provenance": add_provenance,
    "transfer": transfer,
    "burn": burn,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="item_ops",
        description="Marketplace item operations.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    add_common_args(ap)
    sub = ap.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list-items", help="One page of the marketplace")
    ls.add_argument("--offset", type=_non_negative, default=0)
    ls.add_argument("--limit", type=_non_negative, default=DEFAULT_PAGE_SIZE)
    ls.add_argument("--include-hidden", action="store_true")

    for name, what in (("by-artisan", "Items minted by"), ("by-owner", "Items held by")):
        p = sub.add_parser(name, help=f"{what} an address")
        p.add_argument("address")

    sub.add_parser("mine", help="Items held by the signer")

    for name, help_text in (
        ("show-item", "Item details with provenance"),
        ("hide", "Hide an item locally"),
        ("show", "Un-hide an item locally"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("token_id", type=_non_negative)

    mt = sub.add_parser("mint", help="Mint an item (verified artisans only)")
    mt.add_argument("--image", required=True, help="Path to the item photo")
    mt.add_argument("--name", required=True)
    mt.add_argument("--description", required=True)
    mt.add_argument("--materials", required=True)

    pv = sub.add_parser("add-provenance", help="Append a provenance record")
    pv.add_argument("token_id", type=_non_negative)
    pv.add_argument("record")

    tr = sub.add_parser("transfer", help="Transfer an item you hold")
    tr.add_argument("token_id", type=_non_negative)
    tr.add_argument("to", help="Recipient address")

    bn = sub.add_parser("burn", help="Burn an item (irreversible)")
    bn.add_argument("token_id", type=_non_negative)
    bn.add_argument("--yes", action="store_true", help="Confirm the burn")
    return ap


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    handler = _COMMANDS[args.cmd]
    run(args, lambda ctx: handler(ctx, args))


if __name__ == "__main__":
    main()
