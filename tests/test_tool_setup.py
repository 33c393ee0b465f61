from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List

import httpx
import py7zr
import pytest

from dlc_catalog.services import extraction_service, tool_download_service
from dlc_catalog.services.exceptions import DownloadError, ExtractionError
from dlc_catalog.services.extraction_service import extract_tool
from dlc_catalog.services.tool_download_service import download_tool
from dlc_catalog.workers.setup_worker import ToolSetupWorker

URL = "https://downloads.example.com/tool.7z"


def _make_archive(tmp_path: Path, members: dict, password: str = "cs.rin.ru") -> Path:
    staging = tmp_path / "staging"
    staging.mkdir()
    archive = tmp_path / "tool.7z"
    with py7zr.SevenZipFile(archive, "w", password=password) as sz:
        for arcname, content in members.items():
            source = staging / arcname.replace("/", "_")
            source.write_bytes(content)
            sz.write(source, arcname)
    return archive


def test_download_streams_to_file_with_progress(tmp_path: Path, make_client) -> None:
    payload = b"x" * 3000
    progress: List[tuple] = []
    handler = lambda request: httpx.Response(200, content=payload)

    path = asyncio.run(
        download_tool(
            tmp_path / "out",
            url=URL,
            filename="tool.7z",
            client=make_client(handler),
            progress_callback=lambda done, total: progress.append((done, total)),
        )
    )

    assert path.read_bytes() == payload
    assert progress[-1] == (3000, 3000)


def test_existing_archive_is_reused(tmp_path: Path, make_client) -> None:
    (tmp_path / "tool.7z").write_bytes(b"cached")

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("must not download")

    path = asyncio.run(download_tool(tmp_path, url=URL, filename="tool.7z", client=make_client(handler)))

    assert path.read_bytes() == b"cached"


def test_failed_download_retries_and_cleans_up(tmp_path: Path, make_client) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(DownloadError, match="after 3 attempts"):
        asyncio.run(download_tool(tmp_path, url=URL, filename="tool.7z", client=make_client(handler)))

    assert len(calls) == tool_download_service.MAX_RETRIES
    assert not (tmp_path / "tool.7z").exists()


def test_extract_flattens_dlls(tmp_path: Path) -> None:
    archive = _make_archive(
        tmp_path,
        {
            "nonlog_build/windows/steam_api64.dll": b"dll64",
            "nonlog_build/windows/steam_api.dll": b"dll32",
            "log_build/windows/steam_api.dll": b"logging",
        },
    )
    dest = tmp_path / "game"
    (dest).mkdir()
    (dest / "steam_api.dll").write_bytes(b"old")

    installed = extract_tool(archive, dest)

    assert sorted(p.name for p in installed) == ["steam_api.dll", "steam_api64.dll"]
    assert (dest / "steam_api.dll").read_bytes() == b"dll32"
    assert (dest / "steam_api64.dll").read_bytes() == b"dll64"
    assert not (dest / "nonlog_build").exists()


def test_extract_without_expected_dlls(tmp_path: Path) -> None:
    archive = _make_archive(tmp_path, {"readme.txt": b"hello"})

    with pytest.raises(ExtractionError):
        extract_tool(archive, tmp_path / "game")


@pytest.mark.parametrize(
    "member",
    [
        "nonlog_build/windows/../../../steam_api.dll",
        "/tmp/nonlog_build/windows/steam_api.dll",
        "nonlog_build/windows/readme.txt",
    ],
)
def test_member_outside_staging_folder_is_refused(tmp_path: Path, member: str) -> None:
    assert extraction_service._staged_path(tmp_path, member) is None


def test_member_with_windows_separators_lands_in_staging_folder(tmp_path: Path) -> None:
    staged = extraction_service._staged_path(tmp_path, "nonlog_build\\windows\\steam_api64.dll")

    assert staged == (tmp_path / "nonlog_build" / "windows" / "steam_api64.dll").resolve()


def test_extract_missing_archive(tmp_path: Path) -> None:
    with pytest.raises(ExtractionError, match="not found"):
        extract_tool(tmp_path / "nope.7z", tmp_path)


def test_worker_reports_success(tmp_path: Path, monkeypatch) -> None:
    async def fake_download(dest_dir, *, progress_callback=None, **_kwargs):
        progress_callback(5, 10)
        return dest_dir / "tool.7z"

    monkeypatch.setattr(tool_download_service, "download_tool", fake_download)
    monkeypatch.setattr(extraction_service, "extract_tool", lambda archive, dest: [dest / "steam_api.dll"])
    statuses, progress, finished = [], [], []

    ok = asyncio.run(
        ToolSetupWorker(
            tmp_path, on_status=statuses.append, on_progress=lambda d, t: progress.append((d, t)),
            on_finished=finished.append,
        ).run()
    )

    assert ok
    assert progress == [(5.0, 10.0)]
    assert finished == [[tmp_path / "steam_api.dll"]]
    assert statuses[-1] == "Extraction done!"


def test_worker_reports_download_failure(tmp_path: Path, monkeypatch) -> None:
    async def failing_download(dest_dir, **_kwargs):
        raise DownloadError("offline")

    monkeypatch.setattr(tool_download_service, "download_tool", failing_download)
    errors, finished = [], []

    ok = asyncio.run(ToolSetupWorker(tmp_path, on_error=errors.append, on_finished=finished.append).run())

    assert not ok
    assert errors == ["Download failed:\noffline"]
    assert finished == []
