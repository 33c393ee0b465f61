"""
services/detail_service.py – Steam storefront ``appdetails`` lookups.

One capability serves both uses: the parent app (to learn its type and the
DLC ids it declares) and every DLC (to learn its display name).  A missing
detail is a normal outcome, so failures are logged and reported as None
rather than raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import httpx

from dlc_catalog.services.http_client import client_scope

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
APP_DETAILS_URL: str = "https://store.steampowered.com/api/appdetails"
HTTP_TIMEOUT: float = 30.0


@dataclass(frozen=True)
class AppDetail:
    """
    Subset of the storefront details used for DLC resolution.

    Attributes
    ----------
    app_id : Id the details were requested for.
    name   : Store display name.
    type   : Store type (``game``, ``demo``, ``dlc``, ``music`` …).
    dlc    : DLC ids declared by the app, in store order.
    """

    app_id: int
    name: str
    type: str
    dlc: Tuple[int, ...] = field(default_factory=tuple)


class DetailService:
    """Fetch storefront details for a single app id."""

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        url: str = APP_DETAILS_URL,
    ) -> None:
        self._client = client
        self._url = url

    async def fetch_detail(self, app_id: int) -> Optional[AppDetail]:
        """
        Return the details of *app_id*, or None when the store has none.

        Never raises for network, HTTP or payload problems.
        """
        try:
            async with client_scope(self._client, timeout=httpx.Timeout(HTTP_TIMEOUT)) as client:
                response = await client.get(self._url, params={"appids": app_id})
                response.raise_for_status()
                document = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Store returned HTTP %d for app %d", exc.response.status_code, app_id
            )
            return None
        except httpx.RequestError as exc:
            logger.warning("Network error fetching details for app %d: %s", app_id, exc)
            return None
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError both land here.
            logger.warning("Store returned malformed JSON for app %d: %s", app_id, exc)
            return None

        return _parse_detail(app_id, document)


def _parse_detail(app_id: int, document: Any) -> Optional[AppDetail]:
    wrapper = document.get(str(app_id)) if isinstance(document, dict) else None
    if not isinstance(wrapper, dict) or not wrapper.get("success"):
        logger.debug("No store details for app %d", app_id)
        return None

    data = wrapper.get("data")
    if not isinstance(data, dict):
        return None

    dlc_raw = data.get("dlc")
    dlc = tuple(
        value for value in (dlc_raw if isinstance(dlc_raw, list) else ())
        if isinstance(value, int) and not isinstance(value, bool)
    )
    return AppDetail(
        app_id=app_id,
        name=str(data.get("name") or ""),
        type=str(data.get("type") or "").lower(),
        dlc=dlc,
    )
