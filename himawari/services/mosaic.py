from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, Tuple

from PIL import Image

from .. import config

logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]
# Called as fetch(level, x, y); any exception counts as a failed tile.
TileFetcher = Callable[[int, int, int], Image.Image]

CANVAS_MODE = "RGB"
# How often idle producers and workers re-check the stop and finished flags.
POLL_INTERVAL = 0.05


def normalize_workers(workers: int, level: int) -> int:
    """Clamp ``workers`` to the range [1, level²]."""

    if workers <= 0:
        return 1
    return min(workers, level * level)


def iter_grid(level: int) -> Iterator[Coordinate]:
    """Yield every (x, y) of a level×level grid in row-major order."""

    for y in range(level):
        for x in range(level):
            yield x, y


def blit(canvas: Image.Image, tile: Image.Image, x: int, y: int, width: int, height: int) -> None:
    """Copy ``tile`` into the rectangle owned by grid cell (``x``, ``y``).

    Tiles that do not match the cell size are clipped or zero-padded so the
    write never leaves its own rectangle.
    """

    if tile.size != (width, height):
        tile = tile.crop((0, 0, width, height))
    left = x * width
    top = y * height
    canvas.paste(tile, (left, top, left + width, top + height))


class _FirstFailure:
    """Holds the first exception reported by any worker."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.error: BaseException | None = None

    def record(self, error: BaseException) -> bool:
        with self._lock:
            if self.error is not None:
                return False
            self.error = error
            return True


class MosaicAssembler:
    """Fetch a level×level grid of tiles concurrently and stitch them together.

    The canvas is only ever returned complete. The first tile failure stops
    dispatch of further coordinates and is re-raised unchanged once every
    worker has finished; fetches already in flight are allowed to complete
    and any later failures are discarded.
    """

    def __init__(
        self,
        fetch: TileFetcher,
        *,
        tile_width: int = config.TILE_WIDTH,
        tile_height: int = config.TILE_HEIGHT,
    ) -> None:
        self._fetch = fetch
        self.tile_width = tile_width
        self.tile_height = tile_height

    def assemble(self, level: int, workers: int = config.DEFAULT_WORKERS) -> Image.Image:
        if level < 1:
            raise ValueError(f"level must be at least 1, got {level}")

        if level == 1:
            return self._fetch(level, 0, 0)

        workers = normalize_workers(workers, level)
        canvas = Image.new(CANVAS_MODE, (level * self.tile_width, level * self.tile_height))

        if workers == 1:
            self._assemble_sequential(canvas, level)
        else:
            self._assemble_pooled(canvas, level, workers)

        logger.info(
            "Assembled %dx%d mosaic from %d tiles using %d worker(s)",
            canvas.width,
            canvas.height,
            level * level,
            workers,
        )
        return canvas

    def _place(self, canvas: Image.Image, level: int, x: int, y: int) -> None:
        tile = self._fetch(level, x, y)
        blit(canvas, tile, x, y, self.tile_width, self.tile_height)
        logger.debug("Placed tile (%d, %d) of %dx%d grid", x, y, level, level)

    def _assemble_sequential(self, canvas: Image.Image, level: int) -> None:
        for x, y in iter_grid(level):
            self._place(canvas, level, x, y)

    def _assemble_pooled(self, canvas: Image.Image, level: int, workers: int) -> None:
        coordinates: queue.Queue[Coordinate] = queue.Queue(maxsize=workers)
        stop = threading.Event()
        finished = threading.Event()
        failure = _FirstFailure()

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mosaic") as pool:
            futures = [
                pool.submit(self._work, canvas, level, coordinates, stop, finished, failure)
                for _ in range(workers)
            ]
            try:
                for coordinate in iter_grid(level):
                    if not _dispatch(coordinates, coordinate, stop):
                        logger.debug("Tile failure observed; no further tiles dispatched")
                        break
            finally:
                finished.set()

        if failure.error is not None:
            raise failure.error
        for future in futures:
            future.result()

    def _work(
        self,
        canvas: Image.Image,
        level: int,
        coordinates: queue.Queue[Coordinate],
        stop: threading.Event,
        finished: threading.Event,
        failure: _FirstFailure,
    ) -> None:
        while not stop.is_set():
            try:
                x, y = coordinates.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                if finished.is_set() and coordinates.empty():
                    return
                continue
            if stop.is_set():
                return
            try:
                self._place(canvas, level, x, y)
            except Exception as exc:
                if not failure.record(exc):
                    logger.debug("Discarding additional failure for tile (%d, %d): %s", x, y, exc)
                stop.set()
                return
            except BaseException:
                stop.set()
                raise


def _dispatch(coordinates: queue.Queue[Coordinate], coordinate: Coordinate, stop: threading.Event) -> bool:
    """Hand ``coordinate`` to the workers; return False once any worker has failed."""

    while not stop.is_set():
        try:
            coordinates.put(coordinate, timeout=POLL_INTERVAL)
        except queue.Full:
            continue
        return True
    return False
