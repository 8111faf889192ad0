"""Database module for CoFish.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from cofish.db.engine import create_db_engine, get_engine
from cofish.db.models import (
    Base,
    Catch,
    InfoPurchase,
    KarmaEvent,
    User,
    VerificationStatus,
)
from cofish.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "VerificationStatus",
    # Models
    "User",
    "Catch",
    "InfoPurchase",
    "KarmaEvent",
]
