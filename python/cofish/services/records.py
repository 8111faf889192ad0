"""Record store adapter.

Thin data-access layer over the four CoFish tables. Every mutation of an
existing row goes through update_versioned, which turns the `version` column
into an optimistic lock:

    UPDATE ... SET ..., version = version + 1
    WHERE id = :id AND version = :expected

Zero matched rows means a concurrent writer got there first (or the row is
gone). Callers that need a read-modify-write loop wrap it in
retry_on_conflict.

SQLAlchemy errors other than the ones mapped here surface as StoreError.
"""

from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cofish.db.models import Catch, InfoPurchase, KarmaEvent, User
from cofish.errors import (
    ApiErrorCode,
    ConcurrencyConflictError,
    NotFoundError,
    StoreError,
)
from cofish.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_NOT_FOUND_CODES: dict[type, tuple[ApiErrorCode, str]] = {
    User: (ApiErrorCode.E_USER_NOT_FOUND, "User not found"),
    Catch: (ApiErrorCode.E_CATCH_NOT_FOUND, "Catch not found"),
    InfoPurchase: (ApiErrorCode.E_PURCHASE_NOT_FOUND, "Purchase not found"),
    KarmaEvent: (ApiErrorCode.E_NOT_FOUND, "Karma event not found"),
}

DEFAULT_RETRY_ATTEMPTS = 3


def _not_found(model: type) -> NotFoundError:
    code, message = _NOT_FOUND_CODES.get(model, (ApiErrorCode.E_NOT_FOUND, "Not found"))
    return NotFoundError(code, message)


def get(db: Session, model: type[T], record_id: UUID) -> T | None:
    """Fetch a record by primary key, bypassing the identity map cache."""
    try:
        return db.execute(
            select(model).where(model.id == record_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error("record_get_failed", model=model.__name__, error=str(e))
        raise StoreError(f"Failed to load {model.__name__}") from e


def get_or_404(db: Session, model: type[T], record_id: UUID) -> T:
    record = get(db, model, record_id)
    if record is None:
        raise _not_found(model)
    return record


def get_user_or_404(db: Session, user_id: UUID) -> User:
    return get_or_404(db, User, user_id)


def get_catch_or_404(db: Session, catch_id: UUID) -> Catch:
    return get_or_404(db, Catch, catch_id)


def get_purchase_or_404(db: Session, purchase_id: UUID) -> InfoPurchase:
    return get_or_404(db, InfoPurchase, purchase_id)


def create(db: Session, record: T) -> T:
    """Add a new record and flush so defaults (id, created_at, version) are populated.

    Does not commit; the caller owns the transaction.
    """
    try:
        db.add(record)
        db.flush()
    except SQLAlchemyError as e:
        logger.error("record_create_failed", model=type(record).__name__, error=str(e))
        raise StoreError(f"Failed to create {type(record).__name__}") from e
    return record


def update_versioned(
    db: Session,
    model: type[T],
    record_id: UUID,
    expected_version: int,
    **changes: Any,
) -> T:
    """Apply changes if the stored version still equals expected_version.

    Returns the refreshed record with its new version.

    Raises:
        ConcurrencyConflictError: The row exists but its version moved on.
        NotFoundError: The row does not exist.
        StoreError: Any other database failure.
    """
    try:
        result = db.execute(
            update(model)
            .where(model.id == record_id, model.version == expected_version)
            .values(**changes, version=model.version + 1)
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as e:
        logger.error("record_update_failed", model=model.__name__, error=str(e))
        raise StoreError(f"Failed to update {model.__name__}") from e

    if result.rowcount == 0:
        current = get(db, model, record_id)
        if current is None:
            raise _not_found(model)
        logger.info(
            "version_conflict",
            model=model.__name__,
            record_id=str(record_id),
            expected_version=expected_version,
            actual_version=current.version,
        )
        raise ConcurrencyConflictError(f"{model.__name__} {record_id} was modified concurrently")

    return get_or_404(db, model, record_id)


def list_by_user(
    db: Session,
    model: type[T],
    user_id: UUID,
    *,
    limit: int = 100,
    sort: str = "desc",
    since: datetime | None = None,
    until: datetime | None = None,
    where: tuple = (),
) -> list[T]:
    """Rows owned by a user, ordered by created_at (the user/created_at index)."""
    query = select(model).where(model.user_id == user_id, *where)
    return _run_listing(db, model, query, limit=limit, sort=sort, since=since, until=until)


def list_recent(
    db: Session,
    model: type[T],
    *,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = 500,
    where: tuple = (),
) -> list[T]:
    """Rows across all users, newest first (the global created_at index)."""
    query = select(model).where(*where)
    return _run_listing(db, model, query, limit=limit, sort="desc", since=since, until=until)


def iter_recent(
    db: Session,
    model: type[T],
    *,
    since: datetime | None = None,
    until: datetime | None = None,
    page_size: int = 500,
    where: tuple = (),
) -> Iterator[T]:
    """Every row across all users in the window, newest first.

    Reads in keyset pages on (created_at, id), so rows committed by the
    caller between pages neither shift nor repeat the scan.
    """
    cursor: tuple[datetime, UUID] | None = None
    while True:
        query = select(model).where(*where)
        if cursor is not None:
            created_at, record_id = cursor
            query = query.where(
                or_(
                    model.created_at < created_at,
                    and_(model.created_at == created_at, model.id < record_id),
                )
            )
        page = _run_listing(
            db, model, query, limit=page_size, sort="desc", since=since, until=until
        )
        if not page:
            return
        cursor = (page[-1].created_at, page[-1].id)
        yield from page
        if len(page) < page_size:
            return


def _run_listing(
    db: Session,
    model: type,
    query,
    *,
    limit: int,
    sort: str,
    since: datetime | None,
    until: datetime | None,
) -> list:
    if since is not None:
        query = query.where(model.created_at >= since)
    if until is not None:
        query = query.where(model.created_at <= until)
    if sort == "asc":
        query = query.order_by(model.created_at.asc(), model.id.asc())
    else:
        query = query.order_by(model.created_at.desc(), model.id.desc())

    try:
        return list(db.execute(query.limit(limit)).scalars())
    except SQLAlchemyError as e:
        logger.error("record_list_failed", model=model.__name__, error=str(e))
        raise StoreError(f"Failed to list {model.__name__}") from e


def retry_on_conflict(fn: Callable[[], T], attempts: int = DEFAULT_RETRY_ATTEMPTS) -> T:
    """Call fn, re-invoking it on ConcurrencyConflictError up to `attempts` times.

    fn must re-read whatever it compares against; the last conflict is re-raised.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except ConcurrencyConflictError:
            if attempt >= attempts:
                logger.warning("version_conflict_retries_exhausted", attempts=attempts)
                raise
            logger.info("version_conflict_retry", attempt=attempt)
    raise ConcurrencyConflictError()
