"""Business logic services.

Service functions take a Session first, implement the domain rules and
return pydantic models. Routes, tasks and the admin CLI call them.
"""

from cofish.services.bootstrap import ensure_user_record, get_profile
from cofish.services.catches import (
    award_points_for_verified_catch,
    create_pending_catch,
    update_catch_after_analysis,
)
from cofish.services.karma import distribute_karma_for_new_catch
from cofish.services.ledger import compute_ledger, credit_points, debit_points, reconcile_user
from cofish.services.target_zones import (
    get_nearby_catches,
    load_overlay,
    preview_activity,
    purchase_target_zone,
)
from cofish.services.uniqueness import check_fish_uniqueness

__all__ = [
    "award_points_for_verified_catch",
    "check_fish_uniqueness",
    "compute_ledger",
    "create_pending_catch",
    "credit_points",
    "debit_points",
    "distribute_karma_for_new_catch",
    "ensure_user_record",
    "get_nearby_catches",
    "get_profile",
    "load_overlay",
    "preview_activity",
    "purchase_target_zone",
    "reconcile_user",
    "update_catch_after_analysis",
]
