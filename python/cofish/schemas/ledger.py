"""Points ledger schemas.

The ledger is reconstructed from catches and purchases; it is not stored.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from cofish.schemas.users import UserOut


class LedgerEntryOut(BaseModel):
    """One balance-affecting event.

    new_balance is the balance immediately after this entry was applied.
    """

    id: UUID
    kind: Literal["catch", "purchase"]
    created_at: datetime
    description: str
    base_points: int | None = None
    karma_points: int | None = None
    delta: int
    new_balance: int


class LedgerOut(BaseModel):
    """Profile plus history, newest first.

    opening_balance is the balance before the oldest returned entry; 0 when
    the returned history is complete.
    """

    profile: UserOut
    entries: list[LedgerEntryOut]
    opening_balance: int


class ReconciliationReport(BaseModel):
    """Stored balance compared against the balance implied by history."""

    user_id: UUID
    stored_balance: int
    expected_balance: int
    awarded_total: int
    purchase_total: int
    drift: int
    repaired: bool = False
