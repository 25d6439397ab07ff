from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class ApiUsageStat(SQLModel, table=True):
    """Number of upstream requests issued per imagery endpoint."""

    id: Optional[int] = Field(default=None, primary_key=True)
    provider: str = Field(index=True, unique=True)
    request_count: int = Field(default=0)
    last_used_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
