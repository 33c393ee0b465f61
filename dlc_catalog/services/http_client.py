"""
services/http_client.py – Shared httpx.AsyncClient handling.

Services accept an optional client so tests (or a long-running caller) can
share one connection pool; when none is supplied a short-lived client is
opened for the duration of the call.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional

import httpx

# ── Configuration ────────────────────────────────────────────────────────────
DEFAULT_TIMEOUT: float = 30.0
USER_AGENT: str = "dlc-catalog"


@asynccontextmanager
async def client_scope(
    client: Optional[httpx.AsyncClient],
    *,
    timeout: Optional[httpx.Timeout] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield *client* unchanged, or a fresh client closed on exit."""
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(
        timeout=timeout or httpx.Timeout(DEFAULT_TIMEOUT),
        headers=dict(headers or {"User-Agent": USER_AGENT}),
        follow_redirects=True,
    ) as owned:
        yield owned
