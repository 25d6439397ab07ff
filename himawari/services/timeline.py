from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from .. import config
from .errors import ConfigurationError, DecodeError, ProtocolError, TimeParseError, TransportError

logger = logging.getLogger(__name__)

LATEST_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
TILE_TIME_FORMAT = "%Y/%m/%d/%H%M%S"
# Publication times of the full-disk imagery follow the observatory's wall clock.
REFERENCE_TIMEZONE = "Australia/Sydney"


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` in UTC, treating naive datetimes as already being UTC."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def chunk_url(
    moment: datetime,
    level: int,
    width: int,
    x: int,
    y: int,
    *,
    base_url: str | None = None,
) -> str:
    """Build the address of the tile at grid position (``x``, ``y``)."""

    base = (base_url or config.tile_base_url()).rstrip("/")
    stamp = as_utc(moment).strftime(TILE_TIME_FORMAT)
    return f"{base}/{level}d/{width}/{stamp}_{x}_{y}.png"


def parse_latest_date(value: str) -> datetime:
    try:
        parsed = datetime.strptime(value.strip(), LATEST_DATE_FORMAT)
    except ValueError as exc:
        raise TimeParseError(f"unexpected latest image date {value!r}") from exc
    return parsed.replace(tzinfo=timezone.utc)


def latest(client: httpx.Client | None = None, *, url: str | None = None) -> datetime:
    """Query the remote catalogue for the timestamp of the newest full-disk image."""

    target = url or config.latest_url()
    if client is None:
        timeout = httpx.Timeout(config.request_timeout_seconds())
        with httpx.Client(timeout=timeout) as owned_client:
            return _fetch_latest(owned_client, target)
    return _fetch_latest(client, target)


def _fetch_latest(client: httpx.Client, url: str) -> datetime:
    try:
        response = client.get(url)
    except httpx.RequestError as exc:
        raise TransportError(f"unable to reach {url}: {exc}") from exc

    if response.status_code != 200:
        raise ProtocolError(response.status_code, url)

    try:
        payload = response.json()
    except ValueError as exc:
        raise DecodeError(f"latest image metadata is not valid JSON: {exc}") from exc

    date_value = payload.get("date") if isinstance(payload, dict) else None
    if not isinstance(date_value, str):
        raise DecodeError("latest image metadata does not contain a date")

    moment = parse_latest_date(date_value)
    logger.debug("Latest full-disk image available at %s", moment.isoformat())
    return moment


def time_with_offset(
    moment: datetime,
    *,
    now: datetime | None = None,
    local_tz: tzinfo | None = None,
) -> datetime:
    """Shift ``moment`` by the difference between the local and reference UTC offsets.

    Offsets are evaluated at ``now`` (default: the current time) so daylight
    saving on either side is taken into account. ``local_tz`` defaults to the
    process's local timezone.
    """

    try:
        reference = ZoneInfo(REFERENCE_TIMEZONE)
    except ZoneInfoNotFoundError as exc:
        raise ConfigurationError(f"timezone database has no entry for {REFERENCE_TIMEZONE}") from exc

    current = as_utc(now) if now is not None else datetime.now(timezone.utc)
    local_offset = current.astimezone(local_tz).utcoffset() or timedelta(0)
    reference_offset = current.astimezone(reference).utcoffset() or timedelta(0)
    return moment + (local_offset - reference_offset)
