"""
services/archive_service.py – DLC names scraped from archived SteamDB pages.

SteamDB itself blocks scripted clients, so the page is read through the
Wayback Machine:

1. ask the availability API for the closest snapshot of the DLC page;
2. rewrite the snapshot URL to its ``id_`` variant, which serves the original
   HTML without the Wayback toolbar;
3. parse the ``#dlc`` table, one ``.app`` row per DLC.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup, Tag

from dlc_catalog.models.app_entry import PLACEHOLDER_TEMPLATE
from dlc_catalog.services.http_client import client_scope

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
AVAILABILITY_URL: str = "https://archive.org/wayback/available"
STEAMDB_DLC_URL: str = "https://steamdb.info/app/{app_id}/dlc/"
HTTP_TIMEOUT: float = 30.0

# Snapshot URL → raw-content URL: ".../web/<timestamp>/<target>" gains "id_".
SNAPSHOT_URL_PATTERN: re.Pattern = re.compile(
    r"^(https?://web\.archive\.org/web/\d+)(/.+)$", re.MULTILINE
)
RAW_CONTENT_SUBSTITUTION: str = r"\1id_\2"

# Selectors for the SteamDB DLC listing.
DLC_CONTAINER_SELECTOR: str = "#dlc"
DLC_ROW_SELECTOR: str = ".app"
APP_ID_ATTRIBUTE: str = "data-appid"
NAME_TD_INDEX: int = 1


@dataclass(frozen=True)
class ScrapedDlc:
    """One ``(id, name)`` row read from the DLC table."""

    app_id: int
    name: str


def steamdb_dlc_url(app_id: int) -> str:
    return STEAMDB_DLC_URL.format(app_id=app_id)


def to_raw_url(snapshot_url: str) -> str:
    """Insert the ``id_`` marker right after the snapshot timestamp."""
    return SNAPSHOT_URL_PATTERN.sub(RAW_CONTENT_SUBSTITUTION, snapshot_url)


def parse_dlc_page(html: str) -> Optional[List[ScrapedDlc]]:
    """
    Extract DLC rows from a SteamDB DLC page.

    Returns None when the page has no DLC listing container.
    """
    soup = BeautifulSoup(html, "html.parser")
    container = soup.select_one(DLC_CONTAINER_SELECTOR)
    if container is None:
        return None

    rows: List[ScrapedDlc] = []
    for row in container.select(DLC_ROW_SELECTOR):
        raw_id = (row.get(APP_ID_ATTRIBUTE) or "").strip()
        try:
            app_id = int(raw_id)
        except ValueError:
            logger.warning("Skipping DLC row without a usable %s: %r", APP_ID_ATTRIBUTE, raw_id)
            continue

        name = _safe_cell_text(row.find_all("td"), NAME_TD_INDEX)
        rows.append(ScrapedDlc(app_id=app_id, name=name or PLACEHOLDER_TEMPLATE.format(app_id=app_id)))
    return rows


class ArchiveService:
    """Resolve and scrape archived SteamDB DLC pages."""

    def __init__(self, *, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client

    async def find_snapshot(self, app_id: int) -> Optional[str]:
        """
        Return the closest snapshot URL of the app's DLC page, if one with
        status 200 exists.

        Raises
        ------
        httpx.HTTPError on network failure; callers treat it as "no enrichment".
        """
        async with client_scope(self._client, timeout=httpx.Timeout(HTTP_TIMEOUT)) as client:
            response = await client.get(AVAILABILITY_URL, params={"url": steamdb_dlc_url(app_id)})
            response.raise_for_status()
            document = response.json()

        snapshots = document.get("archived_snapshots") if isinstance(document, dict) else None
        closest = snapshots.get("closest") if isinstance(snapshots, dict) else None
        if not isinstance(closest, dict) or str(closest.get("status")) != "200":
            logger.info("No usable archived SteamDB snapshot for app %d", app_id)
            return None
        url = closest.get("url")
        return url if isinstance(url, str) and url else None

    async def fetch_dlc(self, app_id: int) -> Optional[List[ScrapedDlc]]:
        """
        Scrape the archived SteamDB DLC list for *app_id*.

        Returns None when no snapshot exists or the page has no DLC listing.
        """
        snapshot_url = await self.find_snapshot(app_id)
        if snapshot_url is None:
            return None

        raw_url = to_raw_url(snapshot_url)
        logger.info("Get SteamDB App")
        logger.debug("Fetching archived page %s", raw_url)
        async with client_scope(self._client, timeout=httpx.Timeout(HTTP_TIMEOUT)) as client:
            response = await client.get(raw_url)
            response.raise_for_status()
            html = response.text

        rows = parse_dlc_page(html)
        if rows is None:
            logger.error("Could not get DLC from SteamDB!")
        return rows


# ── Private helpers ───────────────────────────────────────────────────────────


def _safe_cell_text(cells: list, index: int) -> str:
    if index >= len(cells) or not isinstance(cells[index], Tag):
        return ""
    return cells[index].get_text().replace("\n", "").strip()
