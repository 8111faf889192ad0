"""Catch posting, verification and award.

Lifecycle:
    PENDING_VERIFICATION -> VERIFIED | REJECTED   (update_catch_after_analysis)
    VERIFIED -> AWARDED                           (award_points_for_verified_catch)

A catch verifies when the oracle says it is alive (alive_score and confidence
at or above the configured thresholds) and the fish has not been posted
before. Awarding credits base_points exactly once; karma distribution runs
afterwards as a post-commit hook and never affects the award.
"""

import asyncio
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from cofish.config import get_settings
from cofish.db.models import Catch, VerificationStatus
from cofish.db.session import transaction
from cofish.errors import (
    ApiErrorCode,
    CatchAlreadyAwardedError,
    CatchInvalidStateError,
    CatchNotVerifiedError,
    ConcurrencyConflictError,
    InvalidRequestError,
    NotFoundError,
    UpstreamOracleError,
)
from cofish.logging import get_logger
from cofish.schemas.catches import AnalysisIn, AwardOut, CatchOut, UniquenessOut
from cofish.services.hooks import PostCommitHooks
from cofish.services.karma import distribute_karma_for_new_catch
from cofish.services.ledger import credit_points
from cofish.services.records import create, get, get_catch_or_404, update_versioned
from cofish.services.uniqueness import check_fish_uniqueness
from cofish.services.vision import (
    AnalysisResult,
    VisionOracle,
    aggregate_frame_results,
    classify_oracle_error,
)

logger = get_logger(__name__)

BASE_POINTS = 100


def _catch_for_owner_or_404(db: Session, catch_id: UUID, viewer_id: UUID | None) -> Catch:
    """Load a catch; other users' catches are masked as not found."""
    catch = get_catch_or_404(db, catch_id)
    if viewer_id is not None and catch.user_id != viewer_id:
        raise NotFoundError(ApiErrorCode.E_CATCH_NOT_FOUND, "Catch not found")
    return catch


def create_pending_catch(
    db: Session,
    user_id: UUID,
    storage_key: str,
    lat: float | None = None,
    lng: float | None = None,
    catch_id: UUID | None = None,
    thumbnail_key: str | None = None,
    species: str | None = None,
) -> CatchOut:
    """Record a freshly uploaded catch video as PENDING_VERIFICATION.

    Location is kept only when both coordinates are given.
    """
    if not storage_key:
        raise InvalidRequestError(message="storage_key is required")

    has_location = lat is not None and lng is not None
    catch = Catch(
        user_id=user_id,
        video_key=storage_key,
        thumbnail_key=thumbnail_key,
        species=species or None,
        lat=lat if has_location else None,
        lng=lng if has_location else None,
        base_points=BASE_POINTS,
        karma_points=0,
        verification_status=VerificationStatus.PENDING_VERIFICATION,
    )
    if catch_id is not None:
        catch.id = catch_id

    with transaction(db):
        create(db, catch)

    logger.info("catch_created", catch_id=str(catch.id), has_location=has_location)
    return CatchOut.model_validate(catch)


def get_catch(db: Session, viewer_id: UUID, catch_id: UUID) -> CatchOut:
    return CatchOut.model_validate(_catch_for_owner_or_404(db, catch_id, viewer_id))


def is_alive(alive_score: float, confidence: float) -> bool:
    settings = get_settings()
    return alive_score >= settings.alive_threshold and confidence >= settings.min_confidence


def update_catch_after_analysis(
    db: Session,
    catch_id: UUID,
    analysis: AnalysisResult | AnalysisIn,
    fish_embedding: Sequence[float] | None = None,
    uniqueness: UniquenessOut | None = None,
    viewer_id: UUID | None = None,
) -> CatchOut:
    """Persist oracle output and settle the catch as VERIFIED or REJECTED.

    When uniqueness is not supplied it is computed from fish_embedding.

    Raises:
        NotFoundError(E_CATCH_NOT_FOUND): Missing, or not the viewer's catch.
        CatchInvalidStateError: The catch is no longer pending.
        ConcurrencyConflictError: The catch changed underneath us.
    """
    catch = _catch_for_owner_or_404(db, catch_id, viewer_id)
    if catch.verification_status != VerificationStatus.PENDING_VERIFICATION:
        raise CatchInvalidStateError()

    embedding = list(fish_embedding) if fish_embedding else None
    if uniqueness is None:
        uniqueness = check_fish_uniqueness(db, catch_id, embedding, viewer_id)

    alive = is_alive(analysis.alive_score, analysis.confidence)
    verified = alive and uniqueness.is_unique
    status = VerificationStatus.VERIFIED if verified else VerificationStatus.REJECTED

    changes = {
        "alive_score": analysis.alive_score,
        "analysis_confidence": analysis.confidence,
        "analysis_note": analysis.explanation or None,
        "verification_status": status,
    }
    if analysis.species:
        changes["species"] = analysis.species
    if analysis.fingerprint:
        changes["fish_fingerprint"] = analysis.fingerprint
    if embedding is not None:
        changes["fish_embedding"] = embedding

    with transaction(db):
        updated = update_versioned(db, Catch, catch_id, catch.version, **changes)

    logger.info(
        "catch_analyzed",
        catch_id=str(catch_id),
        status=status.value,
        alive=alive,
        unique=uniqueness.is_unique,
        alive_score=round(analysis.alive_score, 3),
        confidence=round(analysis.confidence, 3),
    )
    return CatchOut.model_validate(updated)


def award_points_for_verified_catch(
    db: Session,
    catch_id: UUID,
    viewer_id: UUID | None = None,
) -> AwardOut:
    """Credit a VERIFIED catch's base points to its owner, once.

    The status flip to AWARDED and the credit commit together. Karma
    distribution runs after the commit; its failure is logged only.

    Raises:
        NotFoundError(E_CATCH_NOT_FOUND): Missing, or not the viewer's catch.
        CatchAlreadyAwardedError: Already awarded (including a lost race).
        CatchNotVerifiedError: Any other non-VERIFIED status.
    """
    catch = _catch_for_owner_or_404(db, catch_id, viewer_id)
    if catch.verification_status == VerificationStatus.AWARDED:
        raise CatchAlreadyAwardedError()
    if catch.verification_status != VerificationStatus.VERIFIED:
        raise CatchNotVerifiedError()

    points = catch.base_points if catch.base_points is not None else BASE_POINTS

    try:
        with transaction(db):
            awarded = update_versioned(
                db,
                Catch,
                catch_id,
                catch.version,
                verification_status=VerificationStatus.AWARDED,
            )
            new_balance = credit_points(db, catch.user_id, points)
    except ConcurrencyConflictError:
        current = get(db, Catch, catch_id)
        if current is not None and current.verification_status == VerificationStatus.AWARDED:
            raise CatchAlreadyAwardedError() from None
        raise

    logger.info(
        "catch_awarded",
        catch_id=str(catch_id),
        points=points,
        new_balance=new_balance,
    )

    hooks = PostCommitHooks()
    hooks.add("karma_distribution", lambda: distribute_karma_for_new_catch(db, awarded))
    outcomes = hooks.run()

    karma_awarded = sum(o.result.total_points for o in outcomes if o.ok and o.result is not None)
    return AwardOut(
        catch_id=catch_id,
        points_awarded=points,
        new_balance=new_balance,
        karma_awarded=karma_awarded,
    )


async def analyze_catch(
    db: Session,
    catch_id: UUID,
    frames: Sequence[str],
    oracle: VisionOracle,
    viewer_id: UUID | None = None,
) -> CatchOut:
    """Run the full verification pipeline for a pending catch.

    Scores every frame, aggregates, embeds the fingerprint (best-effort),
    checks uniqueness, settles the status and awards a verified catch.

    Raises:
        InvalidRequestError: No frames.
        CatchInvalidStateError: The catch is no longer pending.
        UpstreamOracleError: Frame scoring failed; the catch stays pending.
    """
    if not frames:
        raise InvalidRequestError(message="At least one frame is required")

    catch = _catch_for_owner_or_404(db, catch_id, viewer_id)
    if catch.verification_status != VerificationStatus.PENDING_VERIFICATION:
        raise CatchInvalidStateError()

    try:
        scores = await asyncio.gather(*(oracle.score_frame(frame) for frame in frames))
    except Exception as e:
        error = classify_oracle_error(e)
        logger.warning(
            "frame_scoring_failed",
            catch_id=str(catch_id),
            error_class=error.error_class.value,
            status_code=error.status_code,
        )
        raise UpstreamOracleError(error.message) from e

    analysis = aggregate_frame_results(scores)

    embedding: list[float] | None = None
    if analysis.fingerprint:
        try:
            embedding = await oracle.embed(analysis.fingerprint)
        except Exception as e:
            error = classify_oracle_error(e)
            logger.warning(
                "fingerprint_embedding_failed",
                catch_id=str(catch_id),
                error_class=error.error_class.value,
            )

    result = update_catch_after_analysis(
        db, catch_id, analysis, fish_embedding=embedding, viewer_id=viewer_id
    )

    if result.verification_status == VerificationStatus.VERIFIED:
        award_points_for_verified_catch(db, catch_id)
        result = CatchOut.model_validate(get_catch_or_404(db, catch_id))

    return result


def check_uniqueness_for_viewer(
    db: Session,
    viewer_id: UUID,
    catch_id: UUID,
    fish_embedding: Sequence[float] | None,
) -> UniquenessOut:
    """Duplicate check for one of the viewer's own catches."""
    _catch_for_owner_or_404(db, catch_id, viewer_id)
    return check_fish_uniqueness(db, catch_id, fish_embedding, viewer_id)
