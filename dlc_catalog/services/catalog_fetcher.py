"""
services/catalog_fetcher.py – Paginated download of the full Steam app list.

The ``IStoreService/GetAppList`` endpoint returns at most ``max_results`` apps
per call.  The next page is requested with ``last_appid`` set to the highest
id read so far, so pages are strictly sequential.

Paging stops when the server reports no more results or a page yields no
apps.  A page whose body is not JSON (an HTML error page, an empty body)
aborts the whole fetch; nothing is returned for partial persistence.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from dlc_catalog.models.app_entry import AppEntry
from dlc_catalog.services.catalog_store import looks_like_json, parse_entry, preview
from dlc_catalog.services.config_service import ConfigService
from dlc_catalog.services.exceptions import CatalogFetchError, MissingApiKeyError
from dlc_catalog.services.http_client import USER_AGENT, client_scope

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
APP_LIST_URL: str = "https://api.steampowered.com/IStoreService/GetAppList/v1/"
MAX_RESULTS: int = 50000
HTTP_TIMEOUT: float = 60.0

INCLUDE_FLAGS: Dict[str, str] = {
    "include_games": "true",
    "include_dlc": "true",
    "include_software": "true",
    "include_videos": "true",
    "include_hardware": "true",
}


class CatalogFetcher:
    """Fetch every app from the Steam API, page by page."""

    def __init__(
        self,
        config: ConfigService,
        *,
        client: Optional[httpx.AsyncClient] = None,
        url: str = APP_LIST_URL,
        max_results: int = MAX_RESULTS,
    ) -> None:
        self._config = config
        self._client = client
        self._url = url
        self._max_results = max_results

    async def fetch_all(self) -> List[AppEntry]:
        """
        Download the complete app list.

        Returns
        -------
        List[AppEntry]
            Every app received, in server order.

        Raises
        ------
        MissingApiKeyError
            When no API key is configured (no request is made).
        CatalogFetchError
            On any network error, HTTP error status or non-JSON page.
        """
        api_key = self._config.get_api_key()
        if not api_key:
            raise MissingApiKeyError()

        logger.info("Getting content from API...")
        apps: List[AppEntry] = []
        last_app_id = 0

        timeout = httpx.Timeout(HTTP_TIMEOUT)
        async with client_scope(self._client, timeout=timeout, headers={"User-Agent": USER_AGENT}) as client:
            while True:
                response = await self._fetch_page(client, api_key, last_app_id)
                body = _unwrap_response(response)
                if body is None:
                    break

                page_apps = body.get("apps")
                if not isinstance(page_apps, list):
                    logger.error("Response does not contain 'apps' property")
                    break

                count = 0
                for raw in page_apps:
                    entry = parse_entry(raw)
                    if entry is None:
                        continue
                    apps.append(entry)
                    last_app_id = entry.app_id
                    count += 1

                logger.info("Retrieved %d apps (total so far: %d)", count, len(apps))

                # An empty page ends paging even if the server claims more.
                if count == 0 or body.get("have_more_results") is not True:
                    break

        logger.info("Got content from API successfully.")
        return apps

    async def _fetch_page(
        self, client: httpx.AsyncClient, api_key: str, last_app_id: int
    ) -> Any:
        params: Dict[str, Any] = {"key": api_key, "max_results": self._max_results}
        if last_app_id > 0:
            params["last_appid"] = last_app_id
        params.update(INCLUDE_FLAGS)

        logger.debug("Fetching page starting at appid %d...", last_app_id)
        try:
            response = await client.get(self._url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CatalogFetchError(
                f"Steam API returned HTTP {exc.response.status_code}."
            ) from exc
        except httpx.TimeoutException as exc:
            raise CatalogFetchError(f"Request timed out while updating cache: {exc}") from exc
        except httpx.RequestError as exc:
            raise CatalogFetchError(f"Network error while fetching app list: {exc}") from exc

        text = response.text
        if not looks_like_json(text):
            logger.error("API returned non-JSON content. Response preview: %r", preview(text, 200))
            raise CatalogFetchError("Steam API returned HTML instead of JSON")
        try:
            return json.loads(text)
        except ValueError as exc:
            raise CatalogFetchError(f"Steam API returned malformed JSON: {exc}") from exc


def _unwrap_response(document: Any) -> Optional[Dict[str, Any]]:
    response = document.get("response") if isinstance(document, dict) else None
    if not isinstance(response, dict):
        logger.error("Response does not contain 'response' property")
        return None
    return response
