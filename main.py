"""Command-line interface for the mentor portal service."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from portal.config import Settings, load_settings
from portal.seed import seed_defaults
from portal.store import SQLiteStore

logger = logging.getLogger("mentorportal.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mentor portal utilities")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file (default: PORTAL_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise and seed the portal record store")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP portal service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db"}

    # Global options may precede the subcommand; anything else defaults to ``serve``.
    leading: list[str] = []
    rest = list(args_list)
    while rest:
        if rest[0] == "--config" and len(rest) >= 2:
            leading.extend(rest[:2])
            rest = rest[2:]
        elif rest[0].startswith("--config="):
            leading.append(rest[0])
            rest = rest[1:]
        else:
            break

    if not rest:
        rest = ["serve"]
    elif rest[0] not in known_commands and rest[0] not in ("-h", "--help"):
        rest = ["serve", *rest]

    return parser.parse_args([*leading, *rest])


def _initialise_store(settings: Settings) -> SQLiteStore:
    store = SQLiteStore(settings.database_path)
    store.initialize()
    logger.info("Record store initialised at %s", settings.database_path)
    if settings.seed_defaults:
        seed_defaults(store)
    return store


def _serve(*, settings: Settings, store: SQLiteStore, host: str, port: int) -> None:
    from portal.service import create_app
    import uvicorn

    logger.info("Starting mentor portal on http://%s:%s", host, port)
    app = create_app(settings=settings, store=store)
    uvicorn.run(app, host=host, port=port, log_level="info")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    args = _parse_args(argv)
    settings = load_settings(args.config)
    store = _initialise_store(settings)

    if args.command == "serve":
        _serve(settings=settings, store=store, host=args.host, port=args.port)
    elif args.command == "init-db":
        print(f"Record store ready at {settings.database_path}")


if __name__ == "__main__":
    main()
