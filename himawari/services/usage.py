from __future__ import annotations

from datetime import UTC, datetime
from typing import Dict, List

from sqlmodel import Session, select

from ..database import session_scope
from ..models import ApiUsageStat

TILE_PROVIDER = "himawari_tiles"
LATEST_PROVIDER = "himawari_latest"

PROVIDER_LABELS: Dict[str, str] = {
    TILE_PROVIDER: "Full-disk image tiles",
    LATEST_PROVIDER: "Latest image metadata",
}


def record_api_usage(provider: str, *, increment: int = 1) -> None:
    """Increment the upstream request counter for ``provider``."""

    if increment <= 0:
        return

    with session_scope() as session:
        statement = select(ApiUsageStat).where(ApiUsageStat.provider == provider)
        usage = session.exec(statement).one_or_none()
        now = datetime.now(UTC)
        if usage is None:
            session.add(ApiUsageStat(provider=provider, request_count=increment, last_used_at=now))
        else:
            usage.request_count += increment
            usage.last_used_at = now
        session.commit()


def list_api_usage(session: Session) -> List[Dict[str, object]]:
    statement = select(ApiUsageStat).order_by(ApiUsageStat.provider)
    return [
        {
            "provider": stat.provider,
            "provider_label": PROVIDER_LABELS.get(stat.provider, stat.provider),
            "request_count": stat.request_count,
            "last_used_at": stat.last_used_at,
        }
        for stat in session.exec(statement).all()
    ]
