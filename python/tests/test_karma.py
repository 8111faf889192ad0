"""Tests for karma distribution.

Scenario used throughout: a seller's awarded catch is included in a buyer's
TargetZone purchase; later someone posts a new catch nearby.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from cofish.db.models import KarmaEvent, VerificationStatus
from cofish.services.catches import award_points_for_verified_catch
from cofish.services.karma import (
    KARMA_POINTS,
    KARMA_PROXIMITY_RADIUS_MILES,
    KARMA_PURCHASE_PAGE_SIZE,
    award_karma_to_catch,
    distribute_karma_for_new_catch,
)
from cofish.services.records import get_catch_or_404, get_user_or_404
from tests.factories import (
    BASE_LAT,
    BASE_LNG,
    create_test_catch,
    create_test_purchase,
    create_test_user,
    offset_north,
)


@pytest.fixture
def sold_catch(db_session: Session):
    """Seller's awarded catch at BASE, included in a purchase made a day ago."""
    seller = create_test_user(db_session, points_balance=100)
    buyer = create_test_user(db_session)
    source = create_test_catch(
        db_session, seller.id, status=VerificationStatus.AWARDED, age=timedelta(days=3)
    )
    purchase = create_test_purchase(
        db_session, buyer.id, included_catch_ids=[source.id], age=timedelta(days=1)
    )
    return seller, buyer, source, purchase


def _new_catch(db: Session, user_id, miles_north: float = 1.0, **kwargs):
    lat = offset_north(BASE_LAT, miles_north)
    return create_test_catch(db, user_id, lat=lat, lng=BASE_LNG, **kwargs)


class TestKarmaCascade:
    def test_award_nearby_credits_source_and_seller(self, db_session: Session, sold_catch):
        seller, buyer, source, _ = sold_catch
        new = _new_catch(db_session, buyer.id)

        out = award_points_for_verified_catch(db_session, new.id)

        assert out.karma_awarded == KARMA_POINTS
        assert get_catch_or_404(db_session, source.id).karma_points == 50
        assert get_user_or_404(db_session, seller.id).points_balance == 150
        assert get_user_or_404(db_session, buyer.id).points_balance == 100

    def test_any_poster_triggers_karma(self, db_session: Session, sold_catch):
        seller, _, source, _ = sold_catch
        stranger = create_test_user(db_session)
        new = _new_catch(db_session, stranger.id)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.awarded_catch_ids == [source.id]
        assert get_user_or_404(db_session, seller.id).points_balance == 150

    def test_audit_event_recorded(self, db_session: Session, sold_catch):
        seller, buyer, source, _ = sold_catch
        new = _new_catch(db_session, buyer.id)

        distribute_karma_for_new_catch(db_session, new)

        events = db_session.execute(select(KarmaEvent)).scalars().all()
        assert len(events) == 1
        event = events[0]
        assert event.helper_user_id == seller.id
        assert event.beneficiary_user_id == buyer.id
        assert event.source_catch_id == source.id
        assert event.beneficiary_catch_id == new.id
        assert event.points == KARMA_POINTS

    def test_source_included_twice_is_credited_once(self, db_session: Session, sold_catch):
        seller, buyer, source, _ = sold_catch
        create_test_purchase(
            db_session, buyer.id, included_catch_ids=[source.id], age=timedelta(hours=5)
        )
        new = _new_catch(db_session, buyer.id)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.purchases_scanned == 2
        assert result.total_points == KARMA_POINTS
        assert get_catch_or_404(db_session, source.id).karma_points == 50

    def test_purchase_behind_a_busy_week_still_counts(self, db_session: Session, sold_catch):
        seller, buyer, source, _ = sold_catch
        for minutes in range(1, KARMA_PURCHASE_PAGE_SIZE + 11):
            decoy_buyer = create_test_user(db_session)
            create_test_purchase(
                db_session,
                decoy_buyer.id,
                center_lat=BASE_LAT + 5,
                age=timedelta(minutes=minutes),
            )
        new = _new_catch(db_session, buyer.id)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.purchases_scanned == KARMA_PURCHASE_PAGE_SIZE + 11
        assert result.awarded_catch_ids == [source.id]
        assert get_catch_or_404(db_session, source.id).karma_points == 50
        assert get_user_or_404(db_session, seller.id).points_balance == 150

    def test_far_catch_earns_nothing(self, db_session: Session, sold_catch):
        seller, buyer, _, _ = sold_catch
        new = _new_catch(db_session, buyer.id, miles_north=5.0)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.awarded_catch_ids == []
        assert get_user_or_404(db_session, seller.id).points_balance == 100

    def test_purchase_older_than_window_is_ignored(self, db_session: Session):
        seller = create_test_user(db_session)
        buyer = create_test_user(db_session)
        source = create_test_catch(
            db_session, seller.id, status=VerificationStatus.AWARDED, age=timedelta(days=20)
        )
        create_test_purchase(
            db_session, buyer.id, included_catch_ids=[source.id], age=timedelta(days=8)
        )
        new = _new_catch(db_session, buyer.id)

        assert distribute_karma_for_new_catch(db_session, new).purchases_scanned == 0

    def test_own_source_catch_earns_nothing(self, db_session: Session, sold_catch):
        seller, _, source, _ = sold_catch
        new = _new_catch(db_session, seller.id)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.awarded_catch_ids == []
        assert get_catch_or_404(db_session, source.id).karma_points == 0

    @pytest.mark.parametrize(
        "status", [VerificationStatus.VERIFIED, VerificationStatus.REJECTED]
    )
    def test_unawarded_source_earns_nothing(self, db_session: Session, status):
        seller = create_test_user(db_session)
        buyer = create_test_user(db_session)
        source = create_test_catch(db_session, seller.id, status=status, age=timedelta(days=2))
        create_test_purchase(
            db_session, buyer.id, included_catch_ids=[source.id], age=timedelta(days=1)
        )
        new = _new_catch(db_session, buyer.id)

        assert distribute_karma_for_new_catch(db_session, new).awarded_catch_ids == []

    def test_new_catch_without_location_is_skipped(self, db_session: Session, sold_catch):
        _, buyer, _, _ = sold_catch
        new = create_test_catch(db_session, buyer.id, lat=None, lng=None)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.purchases_scanned == 0

    def test_malformed_and_missing_ids_are_skipped(self, db_session: Session, sold_catch):
        seller, buyer, source, purchase = sold_catch
        purchase.included_catch_ids = ["not-a-uuid", "00000000-0000-0000-0000-000000000000"]
        db_session.commit()
        create_test_purchase(
            db_session, buyer.id, included_catch_ids=[source.id], age=timedelta(hours=2)
        )
        new = _new_catch(db_session, buyer.id)

        result = distribute_karma_for_new_catch(db_session, new)

        assert result.awarded_catch_ids == [source.id]


class TestProximityBoundary:
    @pytest.mark.parametrize(
        ("distance", "eligible"),
        [
            (KARMA_PROXIMITY_RADIUS_MILES, True),
            (KARMA_PROXIMITY_RADIUS_MILES + 1e-7, False),
        ],
    )
    def test_exact_radius_is_inclusive(
        self, db_session: Session, sold_catch, monkeypatch, distance, eligible
    ):
        _, buyer, source, _ = sold_catch
        monkeypatch.setattr(
            "cofish.services.karma.haversine_miles", lambda *args: distance
        )
        new = _new_catch(db_session, buyer.id)

        result = distribute_karma_for_new_catch(db_session, new)

        assert (result.awarded_catch_ids == [source.id]) is eligible


class TestAwardKarmaToCatch:
    def test_accumulates(self, db_session: Session, sold_catch):
        seller, buyer, source, _ = sold_catch
        new = _new_catch(db_session, buyer.id)

        award_karma_to_catch(db_session, source.id, new)
        total = award_karma_to_catch(db_session, source.id, new, amount=25)

        assert total == 75
        assert get_user_or_404(db_session, seller.id).points_balance == 175
