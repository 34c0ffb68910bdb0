# Minimal CLI using argparse: opens the store, runs one command, saves on exit.
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from slot_tree.core.config import SlotTreeConfig
from slot_tree.core.errors import SlotTreeError
from slot_tree.core.store import SlotTreeStore
from slot_tree.core.types import Status, TraversalOrder


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="slot-tree", description="Ordered index over an append-only record log"
    )
    p.add_argument(
        "--data-dir", type=Path, default=Path("slot_tree_data"), help="Data directory"
    )
    p.add_argument(
        "--capacity", type=int, default=100, help="Slot capacity (default: 100)"
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    insert = sub.add_parser("insert", help="Insert a new key")
    insert.add_argument("key", type=int)
    insert.add_argument("payload")

    get = sub.add_parser("get", help="Look up a key")
    get.add_argument("key", type=int)

    update = sub.add_parser("update", help="Replace the payload of a key")
    update.add_argument("key", type=int)
    update.add_argument("payload")

    delete = sub.add_parser("delete", help="Delete a key")
    delete.add_argument("key", type=int)

    traverse = sub.add_parser("traverse", help="List keys in a traversal order")
    traverse.add_argument(
        "order",
        nargs="?",
        default=TraversalOrder.INORDER.value,
        choices=[o.value for o in TraversalOrder],
    )

    sub.add_parser("stats", help="Show table and record log counters")
    return p


def run(store: SlotTreeStore, args: argparse.Namespace) -> int:
    if args.command == "insert":
        status = store.insert(args.key, args.payload)
        print(f"insert {args.key}: {status.value}")
        return 0 if status else 1

    if args.command == "get":
        payload = store.lookup(args.key)
        if payload is None:
            print(f"{args.key}: not found")
            return 1
        print(payload)
        return 0

    if args.command == "update":
        status = store.modify(args.key, args.payload)
        print(f"update {args.key}: {status.value}")
        return 0 if status else 1

    if args.command == "delete":
        payload = store.pop(args.key)
        if payload is None:
            print(f"delete {args.key}: {Status.NOT_FOUND.value}")
            return 1
        print(f"deleted {args.key}: {payload}")
        return 0

    if args.command == "traverse":
        for key, payload in store.items(args.order):
            print(f"{key} -> {payload}")
        return 0

    for name, value in store.stats().items():
        print(f"{name}: {value}")
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SlotTreeConfig(data_dir=str(args.data_dir), capacity=args.capacity)
    try:
        with SlotTreeStore(config) as store:
            return run(store, args)
    except SlotTreeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
