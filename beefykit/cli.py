"""Command-line utilities for authority ids and MMR data."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from beefykit.hexutil import parse_authorities, parse_hex
from beefykit.mmr import decode_leaf, storage_key
from beefykit.uncompress import beefy_id_from_hex, uncompress_beefy_ids

_U64_LIMIT = 1 << 64


def _u64(text: str) -> int:
    value = int(text)
    if value < 0 or value >= _U64_LIMIT:
        raise ValueError(f"{value} is not an unsigned 64-bit integer")
    return value


def _run_uncompress(args: argparse.Namespace) -> None:
    if args.authority is not None:
        uncompress_beefy_ids([args.authority])
    elif args.authorities is not None:
        uncompress_beefy_ids(args.authorities)
    else:
        raise ValueError("Neither argument given")


def _run_decode_leaf(args: argparse.Namespace) -> None:
    print(decode_leaf(args.leaf))


def _run_storage_key(args: argparse.Namespace) -> None:
    print("0x" + storage_key(args.prefix, args.pos).hex())


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(prog="beefykit", description="BEEFY utilities")
    commands = parser.add_subparsers(dest="command", required=True)

    uncompress = commands.add_parser(
        "uncompress-beefy-id",
        help="Decode and uncompress a vector of encoded BEEFY authority ids",
    )
    which = uncompress.add_mutually_exclusive_group(required=True)
    which.add_argument(
        "--authority",
        type=beefy_id_from_hex,
        help="A SCALE-encoded single authority id (compressed public key).",
    )
    which.add_argument(
        "--authorities",
        type=parse_authorities,
        help="A SCALE-encoded vector of authority ids (compressed public keys).",
    )
    uncompress.set_defaults(handler=_run_uncompress)

    mmr = commands.add_parser("mmr", help="Merkle Mountain Range related commands.")
    mmr_commands = mmr.add_subparsers(dest="mmr_command", required=True)

    leaf = mmr_commands.add_parser("decode-leaf", help="Decode an MMR leaf.")
    leaf.add_argument("leaf", type=parse_hex, help="A double SCALE-encoded MMR leaf.")
    leaf.set_defaults(handler=_run_decode_leaf)

    key = mmr_commands.add_parser("storage-key", help="Construct an MMR offchain storage key.")
    key.add_argument("prefix", help="Indexing prefix used in pallet configuration.")
    key.add_argument("pos", type=_u64, help="Node position.")
    key.set_defaults(handler=_run_storage_key)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parse ``argv`` and run the chosen command; return the exit status."""
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    try:
        args.handler(args)
    except ValueError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())