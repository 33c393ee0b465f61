"""
services/catalog_store.py – On-disk catalogue snapshot.

Responsibilities
----------------
1. Serialise catalogue entries into the Steam ``GetAppList`` JSON shape and
   parse that shape back, skipping malformed entries.
2. Report snapshot staleness from the file's modification time (there is no
   timestamp inside the payload).
3. Write snapshots atomically: the new text goes to a sibling temp file that
   then replaces the old snapshot, so a failed write leaves the previous
   snapshot intact.
"""

import asyncio
import json
import logging
import os
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterable, List, Optional

from dlc_catalog.models.app_entry import AppEntry
from dlc_catalog.services.config_service import base_path
from dlc_catalog.services.exceptions import SnapshotFormatError

logger = logging.getLogger(__name__)

# ── Configuration ────────────────────────────────────────────────────────────
CACHE_FILENAME: str = "steamapps.json"
STALE_AFTER: timedelta = timedelta(days=1)

# Characters shown from a rejected payload in log messages.
PREVIEW_LENGTH: int = 100


# ── Payload helpers ──────────────────────────────────────────────────────────


def looks_like_json(text: Optional[str]) -> bool:
    """Cheap pre-check: rejects empty bodies and HTML error pages."""
    return bool(text and text.strip()) and not text.lstrip().startswith("<")


def preview(text: Optional[str], length: int = PREVIEW_LENGTH) -> str:
    return (text or "")[:length]


def serialize_snapshot(entries: Iterable[AppEntry]) -> str:
    """Render *entries* as pretty-printed ``{"response": {"apps": [...]}}`` JSON."""
    payload = {
        "response": {
            "apps": [{"appid": entry.app_id, "name": entry.name} for entry in entries]
        }
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def parse_entry(raw: Any) -> Optional[AppEntry]:
    """
    Build an AppEntry from one ``apps`` element.

    Returns None (after logging a warning) when ``appid`` or ``name`` is
    missing or unusable.
    """
    if not isinstance(raw, dict) or "appid" not in raw or "name" not in raw:
        logger.warning("Skipping app with missing appid or name: %r", raw)
        return None
    app_id, name = raw["appid"], raw["name"]
    if isinstance(app_id, bool) or not isinstance(app_id, int) or not isinstance(name, str):
        logger.warning("Skipping app with malformed appid or name: %r", raw)
        return None
    return AppEntry(app_id=app_id, name=name)


def parse_snapshot(text: Optional[str]) -> List[AppEntry]:
    """
    Parse snapshot JSON into entries.

    Raises
    ------
    SnapshotFormatError when *text* is not JSON or does not have the
    ``{"response": {"apps": [...]}}`` shape.
    """
    if not looks_like_json(text):
        raise SnapshotFormatError(
            f"Catalogue content is not valid JSON. Content starts with: {preview(text)!r}"
        )
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise SnapshotFormatError(f"Catalogue content could not be parsed: {exc}") from exc

    response = document.get("response") if isinstance(document, dict) else None
    apps = response.get("apps") if isinstance(response, dict) else None
    if not isinstance(apps, list):
        raise SnapshotFormatError("Catalogue content lacks the response.apps list.")

    entries = []
    for raw in apps:
        entry = parse_entry(raw)
        if entry is not None:
            entries.append(entry)
    return entries


# ── Store ────────────────────────────────────────────────────────────────────


class CatalogStore:
    """File-backed catalogue snapshot."""

    def __init__(self, path: Optional[Path] = None, stale_after: timedelta = STALE_AFTER) -> None:
        self._path = path or base_path() / CACHE_FILENAME
        self._stale_after = stale_after

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def last_modified(self) -> Optional[float]:
        """Snapshot mtime as a POSIX timestamp, or None when there is no snapshot."""
        try:
            return self._path.stat().st_mtime
        except OSError:
            return None

    def is_stale(self, now: Optional[float] = None) -> bool:
        """True when the snapshot is missing or at least ``stale_after`` old."""
        modified = self.last_modified()
        if modified is None:
            return True
        current = time.time() if now is None else now
        return current - modified >= self._stale_after.total_seconds()

    async def read(self) -> str:
        """Return the raw snapshot text (OSError propagates)."""
        return await asyncio.to_thread(self._path.read_text, encoding="utf-8")

    async def write(self, text: str) -> None:
        """Atomically replace the snapshot with *text*."""
        await asyncio.to_thread(self._write_atomic, text)
        logger.info("Cache written to '%s' successfully.", self._path)

    def _write_atomic(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp = self._path.with_name(f"{self._path.name}.tmp")
        try:
            temp.write_text(text, encoding="utf-8")
            os.replace(temp, self._path)
        except OSError:
            try:
                if temp.exists():
                    temp.unlink()
            except OSError as exc:
                logger.warning("Could not remove temp snapshot '%s': %s", temp, exc)
            raise
