"""Celery task for catch verification.

Runs the verification pipeline (frame scoring, aggregation, fingerprint
embedding, uniqueness, status update, award) for a pending catch, off the
request path.

- Idempotent: a catch that is no longer pending is skipped.
- max_retries=0: an oracle failure leaves the catch pending, so the client
  can enqueue again.
"""

import asyncio
from collections.abc import Sequence
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from cofish.celery import celery_app
from cofish.config import get_settings
from cofish.db.models import Catch, VerificationStatus
from cofish.db.session import get_session_factory
from cofish.errors import ApiError
from cofish.logging import clear_task_context, configure_task_logging, get_logger
from cofish.services import catches as catches_service
from cofish.services.records import get
from cofish.services.vision import OpenAIVisionOracle

logger = get_logger(__name__)


@celery_app.task(bind=True, max_retries=0, name="analyze_catch")
def analyze_catch(
    self,
    catch_id: str,
    frames: list[str],
    request_id: str | None = None,
) -> dict:
    """Verify a pending catch from its extracted frames.

    Args:
        catch_id: UUID of the catch.
        frames: Frame images as data URLs.
        request_id: Originating request, for log correlation.

    Returns:
        Dict with status and, when processed, the resulting verification_status.
    """
    configure_task_logging(
        request_id=request_id, task_name="analyze_catch", task_id=self.request.id
    )
    logger.info("analyze_catch_started", catch_id=catch_id, frame_count=len(frames))

    db = get_session_factory()()
    try:
        result = run_catch_analysis(db, UUID(catch_id), frames)
        logger.info("analyze_catch_completed", catch_id=catch_id, result=result)
        return result
    except Exception as e:
        logger.error("analyze_catch_failed", catch_id=catch_id, error=str(e))
        raise
    finally:
        db.close()
        clear_task_context()


def run_catch_analysis(db: Session, catch_id: UUID, frames: Sequence[str]) -> dict:
    """Task body, callable without a broker."""
    catch = get(db, Catch, catch_id)
    if catch is None:
        return {"status": "skipped", "reason": "catch_not_found"}
    if catch.verification_status != VerificationStatus.PENDING_VERIFICATION:
        return {"status": "skipped", "reason": "not_pending"}

    settings = get_settings()
    if not settings.openai_api_key:
        return {"status": "failed", "reason": "vision_oracle_not_configured"}

    try:
        out = asyncio.run(_analyze_with_fresh_client(db, catch_id, frames))
    except ApiError as e:
        return {"status": "failed", "reason": e.code.value, "message": e.message}

    return {"status": "processed", "verification_status": out.verification_status.value}


async def _analyze_with_fresh_client(db: Session, catch_id: UUID, frames: Sequence[str]):
    settings = get_settings()
    async with httpx.AsyncClient(timeout=httpx.Timeout(float(settings.vision_timeout_s))) as client:
        oracle = OpenAIVisionOracle(
            client,
            api_key=settings.openai_api_key,
            model=settings.vision_model,
            embedding_model=settings.embedding_model,
            timeout_s=settings.vision_timeout_s,
        )
        return await catches_service.analyze_catch(db, catch_id, frames, oracle)
