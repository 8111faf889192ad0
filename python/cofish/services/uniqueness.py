"""Duplicate-fish detection by fingerprint embedding similarity.

A new catch is compared against the owner's recent analyzed catches. The
same fish reposted by its owner is the common abuse, so the owner gets the
stricter (lower) threshold. The check fails open: anything that prevents a
comparison counts as unique.
"""

import json
import math
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from cofish.db.models import Catch, VerificationStatus
from cofish.errors import StoreError
from cofish.logging import get_logger
from cofish.schemas.catches import UniquenessOut
from cofish.services.records import get_catch_or_404, list_by_user

logger = get_logger(__name__)

SAME_USER_THRESHOLD = 0.75
OTHER_USER_THRESHOLD = 0.85
REFERENCE_LIMIT = 100


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0 on length mismatch, empty input or a zero vector."""
    if len(a) != len(b) or not a:
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def parse_embedding(raw) -> list[float] | None:
    """Accept a list or a JSON-encoded list; None for anything unusable."""
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return None
    if not isinstance(raw, list):
        return None
    try:
        return [float(x) for x in raw]
    except (TypeError, ValueError):
        return None


def check_fish_uniqueness(
    db: Session,
    catch_id: UUID,
    fish_embedding: Sequence[float] | None,
    viewer_id: UUID | None = None,
) -> UniquenessOut:
    """Decide whether a catch shows a fish already posted.

    The first reference at or above the threshold marks a duplicate. Otherwise
    the result is unique and reports the highest similarity seen.

    Raises:
        NotFoundError(E_CATCH_NOT_FOUND): catch_id does not exist.
    """
    if not fish_embedding:
        return UniquenessOut(is_unique=True)

    catch = get_catch_or_404(db, catch_id)
    same_user = viewer_id is None or viewer_id == catch.user_id
    threshold = SAME_USER_THRESHOLD if same_user else OTHER_USER_THRESHOLD

    try:
        references = list_by_user(
            db,
            Catch,
            catch.user_id,
            limit=REFERENCE_LIMIT,
            where=(Catch.verification_status != VerificationStatus.PENDING_VERIFICATION,),
        )
    except StoreError as e:
        logger.warning("uniqueness_reference_load_failed", catch_id=str(catch_id), error=str(e))
        return UniquenessOut(is_unique=True)

    highest = 0.0
    most_similar: UUID | None = None

    for reference in references:
        if reference.id == catch_id:
            continue
        embedding = parse_embedding(reference.fish_embedding)
        if embedding is None:
            continue

        similarity = cosine_similarity(fish_embedding, embedding)
        if similarity > highest:
            highest = similarity
            most_similar = reference.id

        if similarity >= threshold:
            logger.info(
                "duplicate_fish_detected",
                catch_id=str(catch_id),
                similar_catch_id=str(reference.id),
                similarity=round(similarity, 4),
                threshold=threshold,
            )
            return UniquenessOut(
                is_unique=False,
                similarity_score=similarity,
                similar_catch_id=reference.id,
            )

    return UniquenessOut(
        is_unique=True,
        similarity_score=highest if highest > 0 else None,
        similar_catch_id=most_similar,
    )
