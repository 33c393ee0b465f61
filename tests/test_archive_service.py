from __future__ import annotations

import asyncio

import httpx
import pytest

from dlc_catalog.services.archive_service import (
    ArchiveService,
    ScrapedDlc,
    parse_dlc_page,
    steamdb_dlc_url,
    to_raw_url,
)

from helpers import json_response

SNAPSHOT = "http://web.archive.org/web/20240101123456/https://steamdb.info/app/100/dlc/"

DLC_PAGE = """
<html><body>
  <div id="dlc">
    <table>
      <tr class="app" data-appid="10"><td>10</td><td>
          Soundtrack
      </td><td>2020</td></tr>
      <tr class="app" data-appid="11"><td>11</td></tr>
      <tr class="app" data-appid="12"><td>12</td><td>SteamDB Unknown App 12</td></tr>
      <tr class="app"><td>?</td><td>No id</td></tr>
    </table>
  </div>
</body></html>
"""


def test_raw_url_inserts_marker_after_timestamp() -> None:
    assert to_raw_url(SNAPSHOT) == (
        "http://web.archive.org/web/20240101123456id_/https://steamdb.info/app/100/dlc/"
    )


def test_raw_url_leaves_foreign_urls_alone() -> None:
    assert to_raw_url("https://example.com/page") == "https://example.com/page"


def test_parse_dlc_page_reads_rows() -> None:
    assert parse_dlc_page(DLC_PAGE) == [
        ScrapedDlc(10, "Soundtrack"),
        ScrapedDlc(11, "Unknown DLC 11"),
        ScrapedDlc(12, "SteamDB Unknown App 12"),
    ]


def test_parse_dlc_page_without_container() -> None:
    assert parse_dlc_page("<html><body><p>Cloudflare</p></body></html>") is None


def _archive_handler(status: str = "200", page: str = DLC_PAGE):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "archive.org":
            return json_response(
                {"archived_snapshots": {"closest": {"status": status, "available": True, "url": SNAPSHOT}}}
            )
        return httpx.Response(200, text=page)

    return handler, requests


def test_fetch_dlc_uses_raw_snapshot(make_client) -> None:
    handler, requests = _archive_handler()
    service = ArchiveService(client=make_client(handler))

    rows = asyncio.run(service.fetch_dlc(100))

    assert [row.app_id for row in rows] == [10, 11, 12]
    assert requests[0].url.params["url"] == steamdb_dlc_url(100)
    assert "20240101123456id_/" in str(requests[1].url)


def test_fetch_dlc_without_successful_snapshot(make_client) -> None:
    handler, requests = _archive_handler(status="404")

    assert asyncio.run(ArchiveService(client=make_client(handler)).fetch_dlc(100)) is None
    assert len(requests) == 1


def test_find_snapshot_without_any_snapshot(make_client) -> None:
    service = ArchiveService(client=make_client(lambda request: json_response({"archived_snapshots": {}})))

    assert asyncio.run(service.find_snapshot(100)) is None


def test_fetch_dlc_page_without_listing(make_client) -> None:
    handler, _ = _archive_handler(page="<html><body>nothing</body></html>")

    assert asyncio.run(ArchiveService(client=make_client(handler)).fetch_dlc(100)) is None


def test_fetch_dlc_propagates_transport_errors(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(httpx.HTTPError):
        asyncio.run(ArchiveService(client=make_client(handler)).fetch_dlc(100))
