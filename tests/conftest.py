from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from dlc_catalog.services.config_service import ConfigService

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture()
def make_client() -> Callable[[Handler], httpx.AsyncClient]:
    def _make(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture()
def config(tmp_path: Path) -> ConfigService:
    service = ConfigService(tmp_path / "config.json")
    service.set_api_key("SECRET")
    return service


@pytest.fixture()
def no_key_config(tmp_path: Path) -> ConfigService:
    return ConfigService(tmp_path / "empty-config.json")
