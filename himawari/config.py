from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_LEVEL = 4
# Higher levels increase quality and size; the result is level*TILE_WIDTH pixels wide.
LEVELS = (1, 2, 4, 8, 16, 20)

TILE_WIDTH = 550
TILE_HEIGHT = TILE_WIDTH

DEFAULT_WORKERS = 5
DEFAULT_REQUEST_TIMEOUT = 60.0

DEFAULT_TILE_BASE_URL = "http://himawari8.nict.go.jp/img/D531106"
DEFAULT_LATEST_URL = "http://himawari8-dl.nict.go.jp/himawari8/img/D531106/latest.json"

WORKERS_ENV = "HIMAWARI_WORKERS"
REQUEST_TIMEOUT_ENV = "HIMAWARI_REQUEST_TIMEOUT"
TILE_BASE_URL_ENV = "HIMAWARI_TILE_BASE_URL"
LATEST_URL_ENV = "HIMAWARI_LATEST_URL"
DATA_DIR_ENV = "HIMAWARI_DATA_DIR"


def default_workers() -> int:
    raw_value = os.getenv(WORKERS_ENV, "").strip()
    if not raw_value:
        return DEFAULT_WORKERS
    try:
        return int(raw_value)
    except ValueError:
        return DEFAULT_WORKERS


def request_timeout_seconds() -> float:
    raw_value = os.getenv(REQUEST_TIMEOUT_ENV, "").strip()
    if not raw_value:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = float(raw_value)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_REQUEST_TIMEOUT


def tile_base_url() -> str:
    override = os.getenv(TILE_BASE_URL_ENV, "").strip()
    return (override or DEFAULT_TILE_BASE_URL).rstrip("/")


def latest_url() -> str:
    override = os.getenv(LATEST_URL_ENV, "").strip()
    return override or DEFAULT_LATEST_URL


def data_dir() -> Path:
    override = os.getenv(DATA_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return BASE_DIR / "data"
