"""User record bootstrap.

Provides race-safe user creation on first authenticated request.
"""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cofish.db.models import User
from cofish.logging import get_logger
from cofish.schemas.users import UserOut
from cofish.services.records import get, get_user_or_404

logger = get_logger(__name__)

DEFAULT_EMAIL = "unknown@example.com"
DEFAULT_DISPLAY_NAME = "Unknown Angler"


def ensure_user_record(
    db: Session,
    user_id: UUID,
    email: str | None = None,
    display_name: str | None = None,
) -> User:
    """Return the user row, creating it with a zero balance if missing.

    Idempotent and race-safe: a concurrent creator wins on the primary key,
    the loser rolls back and reads the winner's row.

    Args:
        db: Database session.
        user_id: Identity provider subject.
        email: Email claim, if the token carried one.
        display_name: Name claim, if the token carried one.
    """
    user = get(db, User, user_id)
    if user is not None:
        return user

    user = User(
        id=user_id,
        email=email or DEFAULT_EMAIL,
        display_name=display_name or email or DEFAULT_DISPLAY_NAME,
        points_balance=0,
    )
    try:
        db.add(user)
        db.commit()
        logger.info("user_created", user_id=str(user_id))
        return user
    except IntegrityError:
        # Lost race: another request created it
        db.rollback()
        return get_user_or_404(db, user_id)


def get_profile(db: Session, user_id: UUID) -> UserOut:
    """Profile with current balance."""
    return UserOut.model_validate(get_user_or_404(db, user_id))
