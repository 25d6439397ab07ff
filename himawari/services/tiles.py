from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import Protocol

import httpx
from PIL import Image, UnidentifiedImageError

from .. import config
from .errors import DecodeError, ProtocolError, TransportError
from .timeline import chunk_url

logger = logging.getLogger(__name__)


class TileSource(Protocol):
    """Anything able to return the decoded tile at a grid position."""

    def fetch(self, moment: datetime, level: int, x: int, y: int) -> Image.Image:
        ...


class HimawariTileSource:
    """Download and decode individual full-disk tiles over HTTP.

    A single instance may be shared by several worker threads; the underlying
    ``httpx.Client`` pools connections across them.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        base_url: str | None = None,
        tile_size: int = config.TILE_WIDTH,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or config.tile_base_url()).rstrip("/")
        self.tile_size = tile_size
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(timeout=httpx.Timeout(timeout or config.request_timeout_seconds()))
        self.client = client

    def __enter__(self) -> HimawariTileSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def url(self, moment: datetime, level: int, x: int, y: int) -> str:
        return chunk_url(moment, level, self.tile_size, x, y, base_url=self.base_url)

    def fetch(self, moment: datetime, level: int, x: int, y: int) -> Image.Image:
        if not (0 <= x < level and 0 <= y < level):
            raise ValueError(f"tile ({x}, {y}) is outside a {level}x{level} grid")

        url = self.url(moment, level, x, y)
        logger.debug("Requesting tile (%d, %d) at level %d: %s", x, y, level, url)
        try:
            response = self.client.get(url)
        except httpx.RequestError as exc:
            raise TransportError(f"unable to download tile ({x}, {y}): {exc}") from exc

        if response.status_code != 200:
            raise ProtocolError(response.status_code, url)

        return self._decode(response.content, x, y)

    def _decode(self, content: bytes, x: int, y: int) -> Image.Image:
        if not content:
            raise DecodeError(f"tile ({x}, {y}) has an empty payload")
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise DecodeError(f"unable to decode tile ({x}, {y}): {exc}") from exc

        expected = (self.tile_size, self.tile_size)
        if image.size != expected:
            raise DecodeError(
                f"tile ({x}, {y}) is {image.size[0]}x{image.size[1]}, expected {expected[0]}x{expected[1]}"
            )
        return image.convert("RGB")
