"""Database session management and transaction helpers.

Provides:
- Request-scoped database sessions via the get_db() dependency
- A transaction context manager for balance-affecting mutations
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from cofish.db.engine import get_engine


def create_session_factory(engine: Any = None) -> sessionmaker[Session]:
    """Create a session factory bound to an engine (default engine if None)."""
    if engine is None:
        engine = get_engine()

    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


_SessionLocal: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the default session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = create_session_factory()
    return _SessionLocal


def set_session_factory(factory: sessionmaker[Session] | None) -> None:
    """Replace the default session factory (worker tasks under test)."""
    global _SessionLocal
    _SessionLocal = factory


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a database session.

    Usage:
        @router.get("/me")
        def me(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[None, None, None]:
    """Commit on success, roll back and re-raise on any exception.

    Usage:
        with transaction(db):
            debit_points(db, user_id, 100)
            create(db, purchase)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
