"""
services/dlc_resolver.py – Build the DLC list of an app from two sources.

Primary source: the storefront details of the app list its DLC ids; each id
known to the catalogue is looked up for its name, falling back to an
``Unknown DLC <id>`` placeholder.

Secondary source (optional, best effort): the archived SteamDB DLC page.
Its rows fill in placeholder names and add DLC the store does not declare.
A name already resolved by the store is never overwritten.

``resolve`` never raises: every failure degrades to fewer records and a log
line.
"""

import asyncio
import logging
from typing import FrozenSet, Iterable, List, Optional, Tuple

from dlc_catalog.models.app_entry import AppEntry, DlcRecord
from dlc_catalog.services.archive_service import ArchiveService, ScrapedDlc
from dlc_catalog.services.catalog_cache import CatalogCache
from dlc_catalog.services.detail_service import AppDetail, DetailService

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
DLC_PARENT_TYPES: FrozenSet[str] = frozenset({"game", "demo"})

# Scraped names containing one of these still lack a real title.
UNRESOLVED_MARKERS: Tuple[str, ...] = ("SteamDB Unknown App", "Unknown DLC")

# Concurrent per-DLC detail requests.
MAX_CONCURRENT_DETAILS: int = 4


def is_unresolved_name(name: str) -> bool:
    return any(marker in name for marker in UNRESOLVED_MARKERS)


def merge_scraped(
    records: Iterable[DlcRecord],
    scraped: Iterable[ScrapedDlc],
    *,
    ignore_unknown: bool = False,
) -> List[DlcRecord]:
    """
    Merge scraped rows into *records* and return the new list.

    * unresolved-looking rows are dropped when *ignore_unknown* is set;
    * a row replaces an existing placeholder with the same id;
    * a row with a new id is appended;
    * an existing resolved record is left untouched.
    """
    merged = list(records)
    index = {record.app_id: position for position, record in enumerate(merged)}

    for row in scraped:
        if ignore_unknown and is_unresolved_name(row.name):
            logger.info("Skipping SteamDB Unknown App %d", row.app_id)
            continue

        candidate = DlcRecord(
            app_id=row.app_id, name=row.name, resolved=not is_unresolved_name(row.name)
        )
        position = index.get(row.app_id)
        if position is None:
            index[row.app_id] = len(merged)
            merged.append(candidate)
        elif not merged[position].resolved:
            merged[position] = candidate

    return merged


class DlcResolver:
    """Combine store details and archived SteamDB pages into a DLC list."""

    def __init__(
        self,
        cache: CatalogCache,
        details: DetailService,
        archive: ArchiveService,
        *,
        max_concurrency: int = MAX_CONCURRENT_DETAILS,
    ) -> None:
        self._cache = cache
        self._details = details
        self._archive = archive
        self._max_concurrency = max(1, max_concurrency)

    async def resolve(
        self,
        app: Optional[AppEntry],
        use_steamdb: bool = False,
        ignore_unknown: bool = False,
    ) -> List[DlcRecord]:
        """
        Return the DLC of *app*.

        Parameters
        ----------
        app            : Catalogue entry picked by the user (None is tolerated).
        use_steamdb    : Also scrape the archived SteamDB DLC page.
        ignore_unknown : Drop scraped rows whose name is still a placeholder.
        """
        logger.debug("Start: resolve DLC")
        try:
            records = await self._resolve_from_store(app)
        except Exception:
            logger.exception("Could not get DLC!")
            return []
        if records is None:
            return []

        for record in records:
            logger.debug("%s", record)
        logger.info("Got DLC successfully...")

        if not use_steamdb:
            return records

        try:
            scraped = await self._archive.fetch_dlc(app.app_id)
            if scraped is None:
                return records
            merged = merge_scraped(records, scraped, ignore_unknown=ignore_unknown)
        except Exception:
            logger.exception("Could not get DLC from SteamDB!")
            return records

        for record in merged:
            logger.debug("%s", record)
        logger.info("Got DLC from SteamDB successfully...")
        return merged

    async def _resolve_from_store(self, app: Optional[AppEntry]) -> Optional[List[DlcRecord]]:
        if app is None:
            logger.error("Could not get DLC: Invalid Steam App")
            return None

        detail = await self._details.fetch_detail(app.app_id)
        if detail is None:
            logger.error("Could not get DLC: Could not get Steam App details")
            return None

        logger.debug('Type for Steam App %s: "%s"', app.name, detail.type)
        if detail.type not in DLC_PARENT_TYPES:
            logger.error('Could not get DLC: Steam App is not of type: "Game"')
            return None

        return await self._resolve_declared(detail)

    async def _resolve_declared(self, detail: AppDetail) -> List[DlcRecord]:
        known_ids = [
            dlc_id for dlc_id in dict.fromkeys(detail.dlc)
            if self._cache.get_by_id(dlc_id) is not None
        ]
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def resolve_one(dlc_id: int) -> DlcRecord:
            async with semaphore:
                dlc_detail = await self._details.fetch_detail(dlc_id)
            if dlc_detail is None or not dlc_detail.name:
                return DlcRecord.placeholder(dlc_id)
            return DlcRecord(app_id=dlc_id, name=dlc_detail.name)

        # gather keeps declaration order regardless of completion order.
        return list(await asyncio.gather(*(resolve_one(dlc_id) for dlc_id in known_ids)))
