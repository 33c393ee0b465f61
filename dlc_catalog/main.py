"""
main.py – dlc-catalog command-line entry point.

Bootstraps logging, wires the services together and dispatches one of:

  set-key KEY                 store the Steam Web API key
  search QUERY                fuzzy search the app catalogue
  dlc (APPID | --name NAME)   list the DLC of an app as ``id=name`` lines
  setup-tool                  download and extract the CreamAPI DLLs
"""

import argparse
import asyncio
import logging
import sys
from itertools import islice
from pathlib import Path
from typing import List, Optional

import httpx

from dlc_catalog.services.archive_service import ArchiveService
from dlc_catalog.services.catalog_cache import CatalogCache
from dlc_catalog.services.catalog_fetcher import CatalogFetcher
from dlc_catalog.services.catalog_store import CatalogStore
from dlc_catalog.services.config_service import ConfigService
from dlc_catalog.services.detail_service import DetailService
from dlc_catalog.services.dlc_resolver import DlcResolver
from dlc_catalog.services.exceptions import (
    CatalogUnavailableError,
    ConfigError,
    MissingApiKeyError,
)
from dlc_catalog.services.http_client import USER_AGENT
from dlc_catalog.workers.setup_worker import ToolSetupWorker

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_MISSING_KEY = 2
EXIT_NO_CATALOG = 3
EXIT_FAILED = 4


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dlc-catalog", description="Search the Steam app catalogue and list DLC."
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    parser.add_argument("--cache", type=Path, default=None, help="Path to the app list snapshot")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    set_key = commands.add_parser("set-key", help="Store the Steam Web API key")
    set_key.add_argument("key")

    search = commands.add_parser("search", help="Fuzzy search apps by name")
    search.add_argument("query")
    search.add_argument("--limit", type=int, default=20)

    dlc = commands.add_parser("dlc", help="List the DLC of an app")
    target = dlc.add_mutually_exclusive_group(required=True)
    target.add_argument("app_id", nargs="?", type=int)
    target.add_argument("--name", help="Exact app name instead of an id")
    dlc.add_argument("--steamdb", action="store_true", help="Also scrape archived SteamDB pages")
    dlc.add_argument(
        "--ignore-unknown", action="store_true", help="Skip SteamDB rows without a real name"
    )

    setup = commands.add_parser("setup-tool", help="Download and extract the CreamAPI DLLs")
    setup.add_argument("--dest", type=Path, default=Path("."))
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = ConfigService(args.config)

    if args.command == "set-key":
        try:
            config.set_api_key(args.key)
        except ConfigError as exc:
            print(exc, file=sys.stderr)
            return EXIT_FAILED
        print(f"Steam API key saved to {config.path}")
        return EXIT_OK

    if args.command == "setup-tool":
        return asyncio.run(_setup_tool(args.dest))

    try:
        return asyncio.run(_run_catalog_command(args, config))
    except MissingApiKeyError as exc:
        print(f"Steam API key required.\n{exc}", file=sys.stderr)
        return EXIT_MISSING_KEY
    except CatalogUnavailableError as exc:
        print(f"No app catalogue available.\n{exc}", file=sys.stderr)
        return EXIT_NO_CATALOG


async def _run_catalog_command(args: argparse.Namespace, config: ConfigService) -> int:
    async with httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT}, timeout=httpx.Timeout(60.0), follow_redirects=True
    ) as client:
        cache = CatalogCache(CatalogFetcher(config, client=client), CatalogStore(args.cache))
        await cache.initialize()

        if args.command == "search":
            for app in islice(cache.search(args.query), max(args.limit, 0)):
                print(f"{app.app_id}\t{app.name}")
            return EXIT_OK

        app = cache.get_by_name(args.name) if args.name else cache.get_by_id(args.app_id)
        if app is None:
            print("App not found in the catalogue.", file=sys.stderr)
            return EXIT_NOT_FOUND

        resolver = DlcResolver(cache, DetailService(client=client), ArchiveService(client=client))
        records = await resolver.resolve(
            app, use_steamdb=args.steamdb, ignore_unknown=args.ignore_unknown
        )
        print(f"# {app}")
        for record in records:
            print(record)
        return EXIT_OK


async def _setup_tool(dest: Path) -> int:
    worker = ToolSetupWorker(
        dest,
        on_status=print,
        on_error=lambda message: print(message, file=sys.stderr),
    )
    return EXIT_OK if await worker.run() else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
