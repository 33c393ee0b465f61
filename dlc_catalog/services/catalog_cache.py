"""
services/catalog_cache.py – In-memory catalogue with a daily refresh policy.

``initialize()`` must be awaited before any lookup.  It refreshes the on-disk
snapshot from the Steam API when that snapshot is missing or a day old,
falls back to the existing snapshot when the API misbehaves, and publishes a
fully built :class:`Catalog` by swapping a single reference.  Readers
therefore see either no catalogue or a complete one.
"""

import asyncio
import logging
from typing import Iterator, List, Optional

from dlc_catalog.models.app_entry import AppEntry, Catalog
from dlc_catalog.services import search_service
from dlc_catalog.services.catalog_fetcher import CatalogFetcher
from dlc_catalog.services.catalog_store import CatalogStore, parse_snapshot, serialize_snapshot
from dlc_catalog.services.exceptions import (
    CatalogFetchError,
    CatalogNotReadyError,
    CatalogUnavailableError,
    SnapshotFormatError,
)

logger = logging.getLogger(__name__)


class CatalogCache:
    """Owns the current catalogue snapshot and answers lookups against it."""

    def __init__(self, fetcher: CatalogFetcher, store: CatalogStore) -> None:
        self._fetcher = fetcher
        self._store = store
        self._catalog: Optional[Catalog] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._catalog is not None

    @property
    def catalog(self) -> Catalog:
        """The published snapshot; raises CatalogNotReadyError before initialize()."""
        catalog = self._catalog
        if catalog is None:
            raise CatalogNotReadyError("The app catalogue has not been initialised yet.")
        return catalog

    # ── Initialisation ────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Load (and refresh if stale) the catalogue.

        Raises
        ------
        MissingApiKeyError
            A refresh is due and no API key is configured.
        CatalogUnavailableError
            Neither the API nor the local snapshot produced a valid catalogue.
        """
        async with self._lock:
            logger.info("Updating cache...")
            text = await self._load_text()

            try:
                entries = parse_snapshot(text)
            except SnapshotFormatError as exc:
                logger.error("%s", exc)
                entries = await self._load_from_disk_only()

            catalog = Catalog(entries)
            self._catalog = catalog
            logger.info("Loaded %d apps into cache!", len(catalog))

    async def _load_text(self) -> Optional[str]:
        if not self._store.is_stale():
            logger.info("Cache already up to date!")
            return await self._read_snapshot()

        try:
            apps = await self._fetcher.fetch_all()
        except CatalogFetchError as exc:
            logger.error("Could not update cache from API: %s", exc)
            return None
        if not apps:
            logger.warning("Steam API returned zero apps; the refreshed cache will be empty")
        text = serialize_snapshot(apps)
        try:
            await self._store.write(text)
        except OSError as exc:
            logger.error("Could not write cache file '%s': %s", self._store.path, exc)
        return text

    async def _load_from_disk_only(self) -> List[AppEntry]:
        if not self._store.exists():
            raise CatalogUnavailableError(
                "Failed to retrieve a valid Steam app list from the API and no cached "
                "version exists. Please check your internet connection and Steam API "
                "key, then try again."
            )

        logger.warning("Attempting to use existing cache file despite age...")
        text = await self._read_snapshot()
        try:
            return parse_snapshot(text)
        except SnapshotFormatError as exc:
            raise CatalogUnavailableError(
                f"The cached app list at '{self._store.path}' is unusable: {exc}"
            ) from exc

    async def _read_snapshot(self) -> Optional[str]:
        try:
            return await self._store.read()
        except OSError as exc:
            logger.error("Could not read cache file '%s': %s", self._store.path, exc)
            return None

    # ── Lookups ───────────────────────────────────────────────────────────────

    def get_by_id(self, app_id: int) -> Optional[AppEntry]:
        logger.debug("Trying to get app with ID %d", app_id)
        app = self.catalog.get(app_id)
        if app is not None:
            logger.debug("Successfully got app %s", app)
        return app

    def get_by_name(self, name: str) -> Optional[AppEntry]:
        logger.info("Trying to get app %s", name)
        app = search_service.find_exact(self.catalog, name)
        if app is not None:
            logger.info("Successfully got app %s", app)
        return app

    def search(self, query: str) -> Iterator[AppEntry]:
        """Lazily yield entries whose names contain every token of *query*."""
        return search_service.search(self.catalog, query)
