from __future__ import annotations

import functools
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Tuple

import httpx
from PIL import Image

from .. import config
from .mosaic import MosaicAssembler
from .tiles import HimawariTileSource, TileSource
from .timeline import as_utc, latest, time_with_offset

logger = logging.getLogger(__name__)


def resolve_level(level: int | None) -> int:
    """Apply the default zoom level and reject levels the server does not publish."""

    if level is None or level <= 0:
        return config.DEFAULT_LEVEL
    if level not in config.LEVELS:
        supported = ", ".join(str(value) for value in config.LEVELS)
        raise ValueError(f"Unsupported zoom level {level}; expected one of {supported}")
    return level


def fetch_image(
    moment: datetime,
    level: int | None = None,
    *,
    workers: int | None = None,
    source: TileSource | None = None,
) -> Image.Image:
    """Load the whole full-disk image for ``moment`` at the given zoom level."""

    level = resolve_level(level)
    if workers is None:
        workers = config.default_workers()
    moment = as_utc(moment)

    if source is not None:
        return _assemble(source, moment, level, workers)

    with HimawariTileSource() as owned_source:
        return _assemble(owned_source, moment, level, workers)


def _assemble(source: TileSource, moment: datetime, level: int, workers: int) -> Image.Image:
    tile_size = getattr(source, "tile_size", config.TILE_WIDTH)
    assembler = MosaicAssembler(
        functools.partial(source.fetch, moment),
        tile_width=tile_size,
        tile_height=tile_size,
    )
    logger.info("Fetching %s full-disk image at level %d", moment.isoformat(), level)
    return assembler.assemble(level, workers)


def fetch_latest_image(
    level: int | None = None,
    *,
    offset_time: bool = False,
    workers: int | None = None,
    source: TileSource | None = None,
    client: httpx.Client | None = None,
) -> Tuple[Image.Image, datetime]:
    """Load the most recent full-disk image and return it with the timestamp used.

    ``offset_time`` shifts the published timestamp into the local timezone.
    """

    level = resolve_level(level)
    moment = latest(client)
    if offset_time:
        moment = time_with_offset(moment)
    return fetch_image(moment, level, workers=workers, source=source), moment


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def save_png(image: Image.Image, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format="PNG")
    return path
