import io
import json
import re
import threading

import httpx
import pytest
from PIL import Image

from himawari import config, database

TILE_PATTERN = re.compile(r"/(\d+)d/(\d+)/\d{4}/\d{2}/\d{2}/\d{6}_(\d+)_(\d+)\.png$")


def tile_color(x: int, y: int) -> tuple:
    return (40 + x * 50, 40 + y * 50, 200)


def png_bytes(size: int, color: tuple) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (size, size), color=color).save(buffer, format="PNG")
    return buffer.getvalue()


class DummyResponse:
    def __init__(self, url: str, status_code: int = 200, content: bytes = b"", content_type: str = "image/png"):
        self.url = httpx.URL(url)
        self.status_code = status_code
        self.content = content
        self.headers = {"Content-Type": content_type}

    def json(self):
        return json.loads(self.content)


class FakeUpstream:
    """Serves the latest-image document and solid-colour tiles keyed by grid position."""

    def __init__(self) -> None:
        self.latest_date = "2024-01-15 03:20:00"
        self.failing: dict = {}
        self.requests: list = []
        self.closed_clients = 0
        self._lock = threading.Lock()
        self._png_cache: dict = {}

    def respond(self, url: str) -> DummyResponse:
        with self._lock:
            self.requests.append(url)
        if url.endswith("latest.json"):
            body = json.dumps({"date": self.latest_date, "file": "PI_H08_20240115_0320_TRC_FLDK_R10_PGPFD.png"})
            return DummyResponse(url, content=body.encode("utf-8"), content_type="application/json")

        match = TILE_PATTERN.search(url)
        assert match, f"unexpected request {url}"
        width, x, y = int(match.group(2)), int(match.group(3)), int(match.group(4))
        if (x, y) in self.failing:
            return DummyResponse(url, status_code=self.failing[(x, y)], content=b"not found", content_type="text/html")

        key = (width, x, y)
        with self._lock:
            if key not in self._png_cache:
                self._png_cache[key] = png_bytes(width, tile_color(x, y))
        return DummyResponse(url, content=self._png_cache[key])

    def tile_requests(self) -> list:
        return [url for url in self.requests if url.endswith(".png")]


@pytest.fixture
def fake_upstream(monkeypatch):
    upstream = FakeUpstream()

    class MockClient:
        def __init__(self, *args, **kwargs):
            pass

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            self.close()

        def get(self, url, params=None, headers=None):
            return upstream.respond(str(url))

        def close(self):
            upstream.closed_clients += 1

    monkeypatch.setattr(httpx, "Client", MockClient)
    return upstream


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    directory = tmp_path / "data"
    monkeypatch.setenv(config.DATA_DIR_ENV, str(directory))
    database.reset_engine()
    yield directory
    database.reset_engine()
