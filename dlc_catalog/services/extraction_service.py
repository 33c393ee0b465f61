"""
services/extraction_service.py – Pull the Steam API DLLs out of the CreamAPI archive.

The release archive is a password-protected 7z.  Only the two non-logging
``steam_api`` DLLs are needed; they are extracted with py7zr and flattened
into the destination directory, overwriting older copies.

Security
--------
Member names are validated against the destination directory before anything
is written, preventing path traversal embedded in a malicious archive.
"""

import os
import shutil
from pathlib import Path
from typing import List, Optional

import py7zr

from dlc_catalog.services.exceptions import ExtractionError

# ── Configuration ────────────────────────────────────────────────────────────
ARCHIVE_PASSWORD: str = "cs.rin.ru"
BUILD_FOLDER: str = "nonlog_build"
PLATFORM_FOLDER: str = "windows"
DLL_NAMES = ("steam_api64.dll", "steam_api.dll")
_DLL_NAMES_LOWER = frozenset(name.lower() for name in DLL_NAMES)


def extract_tool(archive_path: Path, dest_dir: Path, *, password: str = ARCHIVE_PASSWORD) -> List[Path]:
    """
    Extract the Steam API DLLs from *archive_path* into *dest_dir*.

    Returns
    -------
    List[Path]
        The DLLs now present in *dest_dir*.

    Raises
    ------
    ExtractionError
        On any extraction failure, security violation, or when the archive
        holds none of the expected DLLs.
    """
    if not archive_path.exists():
        raise ExtractionError(f"Archive not found: {archive_path}")

    dest_dir.mkdir(parents=True, exist_ok=True)
    build_dir = dest_dir / BUILD_FOLDER
    _remove_tree(build_dir)

    try:
        with py7zr.SevenZipFile(archive_path, mode="r", password=password) as archive:
            targets = _select_targets(archive.getnames())
            if not targets:
                raise ExtractionError(
                    f"'{archive_path.name}' does not contain "
                    f"{BUILD_FOLDER}/{PLATFORM_FOLDER}/{' or '.join(DLL_NAMES)}."
                )
            for name in targets:
                if _staged_path(dest_dir, name) is None:
                    raise ExtractionError(f"Path traversal detected in 7z member: {name}")
            (build_dir / PLATFORM_FOLDER).mkdir(parents=True, exist_ok=True)
            archive.extract(path=dest_dir, targets=targets)
    except ExtractionError:
        raise
    except Exception as exc:
        raise ExtractionError(
            f"Unexpected error extracting '{archive_path.name}': {exc}"
        ) from exc

    extracted: List[Path] = []
    try:
        for dll in DLL_NAMES:
            source = build_dir / PLATFORM_FOLDER / dll
            if source.is_file():
                target = dest_dir / dll
                os.replace(source, target)
                extracted.append(target)
    except OSError as exc:
        raise ExtractionError(f"Failed to move extracted DLLs to '{dest_dir}': {exc}") from exc
    finally:
        _remove_tree(build_dir)

    if not extracted:
        raise ExtractionError("Extraction finished but no DLL was written.")
    return extracted


# ── Private helpers ───────────────────────────────────────────────────────────


def _select_targets(names: List[str]) -> List[str]:
    """Archive member names of the wanted DLLs, whatever separator they use."""
    wanted = {f"{BUILD_FOLDER}/{PLATFORM_FOLDER}/{dll}".lower() for dll in DLL_NAMES}
    return [name for name in names if name.replace("\\", "/").lower() in wanted]


def _remove_tree(path: Path) -> None:
    try:
        if path.exists():
            shutil.rmtree(path)
    except OSError as exc:
        raise ExtractionError(f"Cannot remove '{path}': {exc}") from exc


def _staged_path(dest: Path, member_name: str) -> Optional[Path]:
    """Where *member_name* lands under *dest*, or None outside the DLL staging folder."""
    staging = (dest / BUILD_FOLDER / PLATFORM_FOLDER).resolve()
    resolved = (dest / member_name.replace("\\", "/")).resolve()
    # Must be one of the DLLs, directly inside the staging folder.
    if resolved.parent != staging or resolved.name.lower() not in _DLL_NAMES_LOWER:
        return None
    return resolved
