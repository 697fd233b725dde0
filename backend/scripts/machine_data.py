"""Inspect or clear the persisted machine data document from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from factory_health.config import get_settings
from factory_health.errors import PersistenceError
from factory_health.persistence import JsonDocumentFile
from factory_health.record_store import RecordStore

logger = logging.getLogger("factory_health.scripts")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect or clear stored machine health history.")
    parser.add_argument(
        "--data-path",
        type=Path,
        default=None,
        help="Machine data document (default: FACTORY_HEALTH_DATA_PATH).",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    show = subcommands.add_parser("show", help="Print a user's history, or every username when omitted.")
    show.add_argument("username", nargs="?")

    clear_help = "Remove a user's history. Stop the server first; a running server rewrites the document from memory."
    clear = subcommands.add_parser("clear", help=clear_help, description=clear_help)
    clear.add_argument("username")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    args = parse_args(argv)
    settings = get_settings()
    store = RecordStore.load(
        JsonDocumentFile(args.data_path or settings.data_path),
        history_limit=settings.history_limit,
    )

    if args.command == "show":
        payload = store.list_user(args.username) if args.username else store.list_usernames()
        print(json.dumps(payload, indent=2))
        return 0

    try:
        removed = store.delete_user(args.username)
    except PersistenceError as exc:
        logger.error("Failed to clear machine data: %s", exc)
        return 1
    logger.info("Removed %d records for %s", removed, args.username)
    return 0


if __name__ == "__main__":
    sys.exit(main())
