"""Engine and session factory owned by the application entrypoint."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings

SessionLocal = sessionmaker(autoflush=False, autocommit=False, future=True)


@lru_cache
def get_engine() -> Engine:
    """Create the process-wide engine on first use."""

    settings = get_settings()
    return create_engine(settings.database_url, pool_pre_ping=True, future=True)


def open_session() -> Session:
    return SessionLocal(bind=get_engine())


def dispose_engine() -> None:
    """Close pooled connections; called from the application lifespan."""

    if get_engine.cache_info().currsize:
        get_engine().dispose()
        get_engine.cache_clear()
