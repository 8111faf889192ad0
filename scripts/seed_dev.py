#!/usr/bin/env python
"""Seed the development database with a fixture angler and nearby catches.

Creates (if missing) a fixture user, then scatters VERIFIED catches owned by
a second fixture user around Block Island so TargetZone previews and
purchases have something to find.

Constraints:
- Refuses to run in staging or prod (COFISH_ENV check)
- The fixture users are created idempotently; catches are added on each run
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/seed_dev.py
"""

import os
import sys
from uuid import UUID

FIXTURE_BUYER_ID = UUID("00000000-0000-4000-8000-000000000001")
FIXTURE_SELLER_ID = UUID("00000000-0000-4000-8000-000000000002")
FIXTURE_CENTER = (41.1720, -71.5778)
FIXTURE_BUYER_BALANCE = 500


def main():
    cofish_env = os.getenv("COFISH_ENV", "local")
    if cofish_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in COFISH_ENV={cofish_env}")
        sys.exit(1)

    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from cofish.db.session import get_session_factory
    from cofish.services.admin import reset_user_points, seed_dummy_catches
    from cofish.services.bootstrap import ensure_user_record

    db = get_session_factory()()
    try:
        buyer = ensure_user_record(db, FIXTURE_BUYER_ID, "buyer@cofish.local", "Fixture Buyer")
        ensure_user_record(db, FIXTURE_SELLER_ID, "seller@cofish.local", "Fixture Seller")

        if buyer.points_balance < FIXTURE_BUYER_BALANCE:
            reset_user_points(db, FIXTURE_BUYER_ID, FIXTURE_BUYER_BALANCE)

        seeded = seed_dummy_catches(
            db, FIXTURE_SELLER_ID, *FIXTURE_CENTER, count=30, radius_miles=15
        )
    finally:
        db.close()

    print(f"COFISH_ENV: {cofish_env}")
    print(f"Buyer  {FIXTURE_BUYER_ID} balance >= {FIXTURE_BUYER_BALANCE}")
    print(f"Seller {FIXTURE_SELLER_ID} +{seeded.created_count} catches near {FIXTURE_CENTER}")


if __name__ == "__main__":
    main()
