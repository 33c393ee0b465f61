"""
workers/setup_worker.py – Async worker that orchestrates the
download → extract pipeline for the CreamAPI DLLs.

Callback contract
-----------------
  on_progress(float, float) : (bytes_done, bytes_total) for a progress bar
  on_status(str)            : Human-readable status message
  on_finished(list[Path])   : DLLs installed, on success
  on_error(str)             : User-friendly error message on failure

The worker keeps every service call inside try/except blocks so a failure is
reported through on_error() instead of escaping to the event loop.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional

from dlc_catalog.services import extraction_service, tool_download_service
from dlc_catalog.services.exceptions import DlcCatalogError, DownloadError, ExtractionError

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
ProgressCallback = Callable[[float, float], None]
FinishedCallback = Callable[[List[Path]], None]


def _ignore(*_args) -> None:
    return None


class ToolSetupWorker:
    """
    Runs the tool setup pipeline.

    Instantiate with callbacks, then ``await worker.run()``.
    """

    def __init__(
        self,
        dest_dir: Path,
        *,
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_finished: Optional[FinishedCallback] = None,
        on_error: Optional[StatusCallback] = None,
    ) -> None:
        self._dest_dir = dest_dir
        self._on_status = on_status or _ignore
        self._on_progress = on_progress or _ignore
        self._on_finished = on_finished or _ignore
        self._on_error = on_error or _ignore

    async def run(self) -> bool:
        """Execute the pipeline; returns True on success."""
        try:
            installed = await self._run_pipeline()
        except DownloadError as exc:
            self._on_error(f"Download failed:\n{exc}")
        except ExtractionError as exc:
            self._on_error(f"Extraction failed:\n{exc}")
        except DlcCatalogError as exc:
            self._on_error(f"Error:\n{exc}")
        except Exception as exc:  # noqa: BLE001
            logger.exception("Tool setup crashed")
            self._on_error(f"Unexpected error:\n{type(exc).__name__}: {exc}")
        else:
            self._on_finished(installed)
            return True
        return False

    # ── Pipeline steps ────────────────────────────────────────────────────────

    async def _run_pipeline(self) -> List[Path]:
        # ── 1. Download (reuses an archive already on disk) ───────────────
        self._on_status("Downloading...")
        archive = await tool_download_service.download_tool(
            self._dest_dir,
            progress_callback=self._on_download_progress,
        )
        self._on_status(f"Archive ready: {archive.name}")

        # ── 2. Extract the DLLs ───────────────────────────────────────────
        self._on_status(f'Extracting "{archive.name}"...')
        installed = await asyncio.to_thread(
            extraction_service.extract_tool, archive, self._dest_dir
        )
        for dll in installed:
            self._on_status(f"Installed: {dll}")
        self._on_status("Extraction done!")
        return installed

    def _on_download_progress(self, downloaded: int, total: int) -> None:
        self._on_progress(float(downloaded), float(total if total > 0 else 0))
