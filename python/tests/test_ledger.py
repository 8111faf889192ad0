"""Tests for the points ledger.

Balance mutations, history reconstruction and drift reconciliation.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from cofish.db.models import VerificationStatus
from cofish.db.session import transaction
from cofish.errors import (
    ApiErrorCode,
    InsufficientBalanceError,
    InvalidRequestError,
    NotFoundError,
)
from cofish.services.ledger import (
    compute_ledger,
    credit_points,
    debit_points,
    reconcile_user,
)
from cofish.services.records import get_user_or_404
from tests.factories import create_test_catch, create_test_purchase, create_test_user


def _balance(db: Session, user_id) -> int:
    db.expire_all()
    return get_user_or_404(db, user_id).points_balance


class TestCreditDebit:
    def test_credit_adds_and_returns_new_balance(self, db_session: Session):
        user = create_test_user(db_session, points_balance=20)
        with transaction(db_session):
            new_balance = credit_points(db_session, user.id, 30)
        assert new_balance == 50
        assert _balance(db_session, user.id) == 50

    def test_debit_subtracts(self, db_session: Session):
        user = create_test_user(db_session, points_balance=150)
        with transaction(db_session):
            new_balance = debit_points(db_session, user.id, 100)
        assert new_balance == 50
        assert _balance(db_session, user.id) == 50

    def test_debit_to_exactly_zero_is_allowed(self, db_session: Session):
        user = create_test_user(db_session, points_balance=100)
        with transaction(db_session):
            assert debit_points(db_session, user.id, 100) == 0

    def test_debit_more_than_balance_is_rejected(self, db_session: Session):
        user = create_test_user(db_session, points_balance=99)
        with pytest.raises(InsufficientBalanceError) as exc:
            with transaction(db_session):
                debit_points(db_session, user.id, 100)
        assert exc.value.code == ApiErrorCode.E_INSUFFICIENT_BALANCE
        assert _balance(db_session, user.id) == 99

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amounts_rejected(self, db_session: Session, amount: int):
        user = create_test_user(db_session, points_balance=10)
        with pytest.raises(InvalidRequestError):
            credit_points(db_session, user.id, amount)
        with pytest.raises(InvalidRequestError):
            debit_points(db_session, user.id, amount)

    def test_unknown_user(self, db_session: Session):
        with pytest.raises(NotFoundError) as exc:
            credit_points(db_session, uuid4(), 10)
        assert exc.value.code == ApiErrorCode.E_USER_NOT_FOUND

    def test_each_mutation_bumps_version(self, db_session: Session):
        user = create_test_user(db_session)
        with transaction(db_session):
            credit_points(db_session, user.id, 10)
            credit_points(db_session, user.id, 10)
        db_session.expire_all()
        assert get_user_or_404(db_session, user.id).version == 3


class TestComputeLedger:
    def _build_history(self, db: Session):
        """Two awards and one purchase, applied through the ledger in time order."""
        user = create_test_user(db)
        first = create_test_catch(
            db,
            user.id,
            status=VerificationStatus.AWARDED,
            age=timedelta(hours=3),
            species="Bluefish",
        )
        with transaction(db):
            credit_points(db, user.id, 100)
        second = create_test_catch(
            db,
            user.id,
            status=VerificationStatus.AWARDED,
            age=timedelta(hours=2),
            karma_points=50,
            species=None,
        )
        with transaction(db):
            credit_points(db, user.id, 150)
        purchase = create_test_purchase(db, user.id, age=timedelta(hours=1))
        with transaction(db):
            debit_points(db, user.id, 100)
        return user, first, second, purchase

    def test_entries_newest_first_with_running_balance(self, db_session: Session):
        user, first, second, purchase = self._build_history(db_session)

        ledger = compute_ledger(db_session, user.id)

        assert [e.id for e in ledger.entries] == [purchase.id, second.id, first.id]
        assert [e.delta for e in ledger.entries] == [-100, 150, 100]
        assert [e.new_balance for e in ledger.entries] == [150, 250, 100]
        assert ledger.profile.points_balance == 150

    def test_complete_history_opens_at_zero(self, db_session: Session):
        user, *_ = self._build_history(db_session)
        assert compute_ledger(db_session, user.id).opening_balance == 0

    def test_labels(self, db_session: Session):
        user, first, second, purchase = self._build_history(db_session)

        by_id = {e.id: e for e in compute_ledger(db_session, user.id).entries}

        assert by_id[first.id].description == "Catch: Bluefish"
        assert by_id[second.id].description == "Catch: unknown species"
        assert by_id[second.id].karma_points == 50
        assert by_id[purchase.id].description == "Standard TargetZone"
        assert by_id[purchase.id].kind == "purchase"

    def test_only_awarded_catches_count(self, db_session: Session):
        user = create_test_user(db_session)
        create_test_catch(db_session, user.id, status=VerificationStatus.VERIFIED)
        create_test_catch(db_session, user.id, status=VerificationStatus.REJECTED)
        create_test_catch(db_session, user.id, status=VerificationStatus.PENDING_VERIFICATION)

        ledger = compute_ledger(db_session, user.id)

        assert ledger.entries == []
        assert ledger.opening_balance == 0

    def test_precision_purchase_label(self, db_session: Session):
        user = create_test_user(db_session, points_balance=0)
        create_test_purchase(db_session, user.id, radius_miles=1, final_cost_points=200)

        entry = compute_ledger(db_session, user.id).entries[0]

        assert entry.description == "Precision TargetZone"
        assert entry.delta == -200

    def test_unexplained_balance_shows_in_opening_balance(self, db_session: Session):
        user = create_test_user(db_session, points_balance=500)
        create_test_catch(db_session, user.id, status=VerificationStatus.AWARDED)
        assert compute_ledger(db_session, user.id).opening_balance == 400


class TestReconcile:
    def test_consistent_balance_has_no_drift(self, db_session: Session):
        user = create_test_user(db_session, points_balance=50)
        create_test_catch(db_session, user.id, status=VerificationStatus.AWARDED)
        create_test_catch(
            db_session, user.id, status=VerificationStatus.AWARDED, karma_points=50
        )
        create_test_purchase(db_session, user.id, final_cost_points=200)

        report = reconcile_user(db_session, user.id)

        assert report.awarded_total == 250
        assert report.purchase_total == 200
        assert report.expected_balance == 50
        assert report.drift == 0
        assert report.repaired is False

    def test_drift_reported_without_repair(self, db_session: Session):
        user = create_test_user(db_session, points_balance=500)

        report = reconcile_user(db_session, user.id)

        assert report.drift == 500
        assert report.repaired is False
        assert _balance(db_session, user.id) == 500

    def test_repair_overwrites_balance(self, db_session: Session):
        user = create_test_user(db_session, points_balance=500)
        create_test_catch(db_session, user.id, status=VerificationStatus.AWARDED)

        with transaction(db_session):
            report = reconcile_user(db_session, user.id, repair=True)

        assert report.drift == 400
        assert report.repaired is True
        assert _balance(db_session, user.id) == 100
