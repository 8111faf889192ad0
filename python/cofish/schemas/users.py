"""User profile schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    """Angler profile with current points balance."""

    id: UUID
    email: str
    display_name: str
    points_balance: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
