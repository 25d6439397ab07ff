from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from . import config

DB_FILENAME = "himawari.db"

_engine: Engine | None = None
_initialized = False


def get_engine() -> Engine:
    """Return the SQLite engine for the configured data directory, creating it once."""

    global _engine
    if _engine is None:
        directory = config.data_dir()
        directory.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(
            f"sqlite:///{directory / DB_FILENAME}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return _engine


def reset_engine() -> None:
    """Drop the cached engine so the next access honours a new data directory."""

    global _engine, _initialized
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _initialized = False


def init_db() -> None:
    """Create database tables if they do not exist."""

    global _initialized
    if _initialized:
        return

    from . import models  # noqa: F401 ensures models are registered

    SQLModel.metadata.create_all(get_engine())
    _initialized = True


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    init_db()
    with Session(get_engine()) as session:
        yield session


def get_session() -> Iterator[Session]:
    init_db()
    with Session(get_engine()) as session:
        yield session
