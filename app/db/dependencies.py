"""Request-scoped database session dependency."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from app.db.session import open_session


def get_db_session() -> Generator[Session, None, None]:
    """Yield a session; uncommitted work is rolled back if the request fails."""

    session = open_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
