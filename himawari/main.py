from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import Response
from PIL import Image
from sqlmodel import Session

from . import config
from .database import get_session, init_db
from .services.errors import HimawariError
from .services.imagery import encode_png, fetch_image, resolve_level
from .services.timeline import as_utc, latest, time_with_offset
from .services.usage import LATEST_PROVIDER, TILE_PROVIDER, list_api_usage, record_api_usage

app = FastAPI(title="Himawari Full-Disk Imagery", version="0.1.0")

logger = logging.getLogger(__name__)

TIME_HEADER = "X-Himawari-Time"


@app.on_event("startup")
def on_startup() -> None:
    init_db()


@app.get("/")
def read_root() -> Dict[str, object]:
    return {
        "levels": list(config.LEVELS),
        "default_level": config.DEFAULT_LEVEL,
        "tile_size": config.TILE_WIDTH,
        "default_workers": config.default_workers(),
    }


@app.get("/latest")
def read_latest() -> Dict[str, str]:
    try:
        moment = latest()
        record_api_usage(LATEST_PROVIDER)
        offset_moment = time_with_offset(moment)
    except HimawariError as exc:
        raise _upstream_error("latest image lookup", exc) from exc
    return {"date": moment.isoformat(), "offset_date": offset_moment.isoformat()}


@app.get("/image.png")
def read_image(
    time: str = Query(..., description="ISO 8601 timestamp; naive values are UTC"),
    level: int | None = Query(None),
    workers: int | None = Query(None),
) -> Response:
    moment = _parse_time(time)
    level = _validated_level(level)
    try:
        image = fetch_image(moment, level, workers=workers)
    except HimawariError as exc:
        raise _upstream_error("full-disk image download", exc) from exc
    record_api_usage(TILE_PROVIDER, increment=level * level)
    return _png_response(image, as_utc(moment))


@app.get("/latest.png")
def read_latest_image(
    level: int | None = Query(None),
    offset_time: bool = Query(False),
    workers: int | None = Query(None),
) -> Response:
    level = _validated_level(level)
    try:
        moment = latest()
    except HimawariError as exc:
        raise _upstream_error("latest image lookup", exc) from exc
    record_api_usage(LATEST_PROVIDER)

    try:
        if offset_time:
            moment = time_with_offset(moment)
        image = fetch_image(moment, level, workers=workers)
    except HimawariError as exc:
        raise _upstream_error("latest full-disk image download", exc) from exc
    record_api_usage(TILE_PROVIDER, increment=level * level)
    return _png_response(image, moment)


@app.get("/usage")
def read_usage(session: Session = Depends(get_session)) -> List[Dict[str, object]]:
    return list_api_usage(session)


def _parse_time(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid time {value!r}") from exc


def _validated_level(level: int | None) -> int:
    try:
        return resolve_level(level)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _upstream_error(action: str, exc: HimawariError) -> HTTPException:
    logger.warning("%s failed: %s", action.capitalize(), exc)
    return HTTPException(status_code=502, detail=f"{action} failed: {exc}")


def _png_response(image: Image.Image, moment: datetime) -> Response:
    return Response(
        content=encode_png(image),
        media_type="image/png",
        headers={TIME_HEADER: moment.isoformat()},
    )
