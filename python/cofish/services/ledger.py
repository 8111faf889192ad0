"""Points ledger: balance mutations and history reconstruction.

The only writers of users.points_balance are credit_points and debit_points.
Both do a versioned read-modify-write and retry on conflict with a fresh
read. Neither commits; callers wrap them in cofish.db.session.transaction.

History is reconstructed, not stored: AWARDED catches contribute
+(base_points + karma_points), purchases contribute -final_cost_points.
Walking that list back from the stored balance yields the balance after
each entry. reconcile_user checks that walk lands on zero.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cofish.config import get_settings
from cofish.db.models import Catch, InfoPurchase, User, VerificationStatus
from cofish.errors import InsufficientBalanceError, InvalidRequestError
from cofish.logging import get_logger
from cofish.schemas.ledger import LedgerEntryOut, LedgerOut, ReconciliationReport
from cofish.schemas.users import UserOut
from cofish.services.records import (
    get_user_or_404,
    list_by_user,
    retry_on_conflict,
    update_versioned,
)

logger = get_logger(__name__)

# Upper bound on each history source; older entries fold into opening_balance
LEDGER_HISTORY_LIMIT = 100

PRECISION_RADIUS_MILES = 1
STANDARD_RADIUS_MILES = 2


# =============================================================================
# Balance mutations
# =============================================================================


def credit_points(db: Session, user_id: UUID, amount: int) -> int:
    """Add points to a user's balance. Returns the new balance.

    Raises:
        InvalidRequestError: amount is not positive.
        NotFoundError(E_USER_NOT_FOUND): no such user.
        ConcurrencyConflictError: retries exhausted.
    """
    if amount <= 0:
        raise InvalidRequestError(message=f"Credit amount must be positive, got {amount}")

    def attempt() -> int:
        user = get_user_or_404(db, user_id)
        updated = update_versioned(
            db, User, user_id, user.version, points_balance=user.points_balance + amount
        )
        return updated.points_balance

    new_balance = retry_on_conflict(attempt, attempts=get_settings().ledger_max_attempts)
    logger.info("points_credited", user_id=str(user_id), amount=amount, new_balance=new_balance)
    return new_balance


def debit_points(db: Session, user_id: UUID, amount: int) -> int:
    """Remove points from a user's balance. Returns the new balance.

    The balance never goes below zero; the check is repeated on every retry
    against the freshly read balance.

    Raises:
        InvalidRequestError: amount is not positive.
        InsufficientBalanceError: balance < amount.
        NotFoundError(E_USER_NOT_FOUND): no such user.
        ConcurrencyConflictError: retries exhausted.
    """
    if amount <= 0:
        raise InvalidRequestError(message=f"Debit amount must be positive, got {amount}")

    def attempt() -> int:
        user = get_user_or_404(db, user_id)
        if user.points_balance < amount:
            raise InsufficientBalanceError(balance=user.points_balance, required=amount)
        updated = update_versioned(
            db, User, user_id, user.version, points_balance=user.points_balance - amount
        )
        return updated.points_balance

    new_balance = retry_on_conflict(attempt, attempts=get_settings().ledger_max_attempts)
    logger.info("points_debited", user_id=str(user_id), amount=amount, new_balance=new_balance)
    return new_balance


# =============================================================================
# History
# =============================================================================


def purchase_cost(purchase: InfoPurchase) -> int:
    """Points a purchase removed from the balance."""
    if purchase.final_cost_points is not None:
        return purchase.final_cost_points
    return purchase.base_cost_points or 0


def purchase_label(purchase: InfoPurchase) -> str:
    if purchase.radius_miles == PRECISION_RADIUS_MILES:
        return "Precision TargetZone"
    if purchase.radius_miles == STANDARD_RADIUS_MILES:
        return "Standard TargetZone"
    return "TargetZone"


def catch_label(catch: Catch) -> str:
    if catch.species:
        return f"Catch: {catch.species}"
    return "Catch: unknown species"


def compute_ledger(db: Session, user_id: UUID) -> LedgerOut:
    """Reconstruct the user's points history, newest first.

    Entries with equal created_at keep input order (catches before purchases).
    Only the most recent LEDGER_HISTORY_LIMIT catches and purchases are read.
    """
    user = get_user_or_404(db, user_id)

    catches = list_by_user(
        db,
        Catch,
        user_id,
        limit=LEDGER_HISTORY_LIMIT,
        where=(Catch.verification_status == VerificationStatus.AWARDED,),
    )
    purchases = list_by_user(db, InfoPurchase, user_id, limit=LEDGER_HISTORY_LIMIT)

    events: list[dict] = []
    for catch in catches:
        events.append(
            {
                "id": catch.id,
                "kind": "catch",
                "created_at": catch.created_at,
                "description": catch_label(catch),
                "base_points": catch.base_points or 0,
                "karma_points": catch.karma_points or 0,
                "delta": (catch.base_points or 0) + (catch.karma_points or 0),
            }
        )
    for purchase in purchases:
        events.append(
            {
                "id": purchase.id,
                "kind": "purchase",
                "created_at": purchase.created_at,
                "description": purchase_label(purchase),
                "delta": -purchase_cost(purchase),
            }
        )

    # sorted() is stable: ties keep catches ahead of purchases
    events = sorted(events, key=lambda e: e["created_at"], reverse=True)

    running = user.points_balance
    entries: list[LedgerEntryOut] = []
    for event in events:
        entries.append(LedgerEntryOut(**event, new_balance=running))
        running -= event["delta"]

    return LedgerOut(
        profile=UserOut.model_validate(user),
        entries=entries,
        opening_balance=running,
    )


def reconcile_user(db: Session, user_id: UUID, *, repair: bool = False) -> ReconciliationReport:
    """Compare the stored balance with the balance implied by full history.

    Unlike compute_ledger this aggregates every row, not just the recent ones.
    With repair=True a drifting balance is overwritten (versioned); the caller
    commits.
    """
    user = get_user_or_404(db, user_id)

    awarded_total = db.execute(
        select(func.coalesce(func.sum(Catch.base_points + Catch.karma_points), 0)).where(
            Catch.user_id == user_id,
            Catch.verification_status == VerificationStatus.AWARDED,
        )
    ).scalar_one()
    purchase_total = db.execute(
        select(
            func.coalesce(
                func.sum(
                    func.coalesce(InfoPurchase.final_cost_points, InfoPurchase.base_cost_points, 0)
                ),
                0,
            )
        ).where(InfoPurchase.user_id == user_id)
    ).scalar_one()

    expected = int(awarded_total) - int(purchase_total)
    drift = user.points_balance - expected

    repaired = False
    if drift != 0:
        logger.warning(
            "ledger_drift_detected",
            user_id=str(user_id),
            stored_balance=user.points_balance,
            expected_balance=expected,
            drift=drift,
        )
        if repair:
            update_versioned(db, User, user_id, user.version, points_balance=expected)
            repaired = True
            logger.info("ledger_drift_repaired", user_id=str(user_id), new_balance=expected)

    return ReconciliationReport(
        user_id=user_id,
        stored_balance=user.points_balance,
        expected_balance=expected,
        awarded_total=int(awarded_total),
        purchase_total=int(purchase_total),
        drift=drift,
        repaired=repaired,
    )
