"""
services/tool_download_service.py – Async download of the CreamAPI archive.

Uses httpx.AsyncClient in streaming mode.  A progress callback
(bytes_downloaded, total_bytes_or_-1) is called for every chunk so a caller can
render a progress bar.  An archive already on disk is reused.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

import httpx

from dlc_catalog.services.exceptions import DownloadError

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
DOWNLOAD_URL: str = (
    "https://www.dropbox.com/scl/fi/m9e73w6fi5kzzt5tqa32e/CreamAPI_Release_v5.3.0.0.7z"
    "?rlkey=ecpufkebdl6idokow6b8qf8lz&st=pnwm5x35&dl=1"
)
ARCHIVE_FILENAME: str = "CreamAPI_Release_v5.3.0.0.7z"
CHUNK_SIZE: int = 1024 * 1024  # 1 MiB
DOWNLOAD_TIMEOUT: float = 600.0
MAX_RETRIES: int = 3
BROWSER_USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:86.0) Gecko/20100101 Firefox/86.0"
)

# ── Types ────────────────────────────────────────────────────────────────────
ProgressCallback = Callable[[int, int], None]


async def download_tool(
    dest_dir: Path,
    *,
    progress_callback: Optional[ProgressCallback] = None,
    url: str = DOWNLOAD_URL,
    filename: str = ARCHIVE_FILENAME,
    client: Optional[httpx.AsyncClient] = None,
) -> Path:
    """
    Download the tool archive into *dest_dir* unless it is already there.

    Returns
    -------
    Path to the archive.

    Raises
    ------
    DownloadError after MAX_RETRIES failed attempts; the partial file is removed.
    """
    dest_path = dest_dir / filename
    if dest_path.exists():
        logger.info("%s already exists, skipping download...", filename)
        return dest_path

    dest_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Start download from %s...", url)

    last_error: Optional[Exception] = None
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            await _attempt_download(url, dest_path, progress_callback, client)
        except DownloadError as exc:
            last_error = exc
            logger.warning("Download attempt %d/%d failed: %s", attempt, MAX_RETRIES, exc)
            _cleanup_partial(dest_path)
            continue
        logger.info("Download done.")
        return dest_path

    raise DownloadError(
        f"Download failed after {MAX_RETRIES} attempts. Last error: {last_error}"
    ) from last_error


async def _attempt_download(
    url: str,
    dest_path: Path,
    progress_callback: Optional[ProgressCallback],
    client: Optional[httpx.AsyncClient],
) -> None:
    timeout = httpx.Timeout(DOWNLOAD_TIMEOUT)
    headers = {"User-Agent": BROWSER_USER_AGENT}
    try:
        if client is not None:
            await _stream_to_file(client, url, dest_path, progress_callback, headers)
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
                await _stream_to_file(owned, url, dest_path, progress_callback, headers)
    except httpx.HTTPStatusError as exc:
        raise DownloadError(
            f"Server returned HTTP {exc.response.status_code} for URL: {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise DownloadError(f"Network error during download: {exc}") from exc
    except OSError as exc:
        raise DownloadError(f"I/O error writing download to disk: {exc}") from exc


async def _stream_to_file(
    client: httpx.AsyncClient,
    url: str,
    dest_path: Path,
    progress_callback: Optional[ProgressCallback],
    headers: dict,
) -> None:
    async with client.stream("GET", url, headers=headers) as resp:
        resp.raise_for_status()
        total_bytes = int(resp.headers.get("content-length", -1))
        downloaded = 0
        with open(dest_path, "wb") as fh:
            async for chunk in resp.aiter_bytes(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                fh.write(chunk)
                downloaded += len(chunk)
                if progress_callback:
                    progress_callback(downloaded, total_bytes)


def _cleanup_partial(partial: Path) -> None:
    try:
        if partial.exists():
            partial.unlink()
    except OSError as exc:
        logger.warning("Could not remove partial download '%s': %s", partial, exc)
