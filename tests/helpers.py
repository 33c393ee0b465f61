from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Iterable

import httpx


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


def snapshot_text(apps: Iterable[tuple[int, str]]) -> str:
    return json.dumps({"response": {"apps": [{"appid": i, "name": n} for i, n in apps]}})


def age_file(path: Path, seconds: float) -> None:
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))
