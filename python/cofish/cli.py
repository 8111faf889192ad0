"""cofish-admin: maintenance commands.

Usage:
    cofish-admin seed --user-id UUID --lat 41.172 --lng -71.578 [--count 30] [--radius 15]
    cofish-admin seed --email angler@example.com --lat ... --lng ...
    cofish-admin delete-all --yes
    cofish-admin reset-points --user-id UUID [--balance 0]
    cofish-admin debug-catch CATCH_ID
    cofish-admin reconcile --user-id UUID [--repair]

Refuses to run when COFISH_ENV is staging or prod. Output is JSON on stdout.
"""

import argparse
import json
import sys
from uuid import UUID

from cofish.config import Environment, get_settings
from cofish.db.session import get_session_factory, transaction
from cofish.errors import ApiError
from cofish.logging import configure_logging, get_logger
from cofish.services import admin as admin_service
from cofish.services import ledger as ledger_service

logger = get_logger(__name__)

ALLOWED_ENVIRONMENTS = (Environment.LOCAL, Environment.TEST)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cofish-admin", description="CoFish maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed", help="Create dummy VERIFIED catches around a point")
    owner = seed.add_mutually_exclusive_group(required=True)
    owner.add_argument("--user-id", type=UUID)
    owner.add_argument("--email")
    seed.add_argument("--lat", type=float, required=True)
    seed.add_argument("--lng", type=float, required=True)
    seed.add_argument("--count", type=int, default=10)
    seed.add_argument("--radius", type=float, default=5.0, help="Scatter radius in miles")
    seed.add_argument("--species")

    delete_all = commands.add_parser("delete-all", help="Delete all catches, purchases, karma")
    delete_all.add_argument("--yes", action="store_true", help="Confirm deletion")

    reset = commands.add_parser("reset-points", help="Overwrite a user's balance")
    reset.add_argument("--user-id", type=UUID, required=True)
    reset.add_argument("--balance", type=int, default=0)

    debug = commands.add_parser("debug-catch", help="Print everything stored about a catch")
    debug.add_argument("catch_id", type=UUID)

    reconcile = commands.add_parser("reconcile", help="Compare a balance with its history")
    reconcile.add_argument("--user-id", type=UUID, required=True)
    reconcile.add_argument("--repair", action="store_true", help="Overwrite drifted balance")

    return parser


def run_command(db, args: argparse.Namespace):
    """Dispatch one parsed command; returns a pydantic model."""
    if args.command == "seed":
        user_id = args.user_id or admin_service.find_user_by_email(db, args.email).id
        return admin_service.seed_dummy_catches(
            db,
            user_id,
            args.lat,
            args.lng,
            count=args.count,
            radius_miles=args.radius,
            species=args.species,
        )
    if args.command == "delete-all":
        return admin_service.delete_all_data(db)
    if args.command == "reset-points":
        return admin_service.reset_user_points(db, args.user_id, args.balance)
    if args.command == "debug-catch":
        return admin_service.debug_catch(db, args.catch_id)
    if args.command == "reconcile":
        with transaction(db):
            return ledger_service.reconcile_user(db, args.user_id, repair=args.repair)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    # stdout carries the JSON result
    configure_logging(stream=sys.stderr)
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if settings.cofish_env not in ALLOWED_ENVIRONMENTS:
        print(
            f"ERROR: cofish-admin refuses to run in COFISH_ENV={settings.cofish_env.value}",
            file=sys.stderr,
        )
        return 1

    if args.command == "delete-all" and not args.yes:
        print("ERROR: delete-all requires --yes", file=sys.stderr)
        return 2

    db = get_session_factory()()
    try:
        result = run_command(db, args)
    except ApiError as e:
        print(json.dumps({"error": {"code": e.code.value, "message": e.message}}), file=sys.stderr)
        return 1
    finally:
        db.close()

    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
