"""Daily TargetZone preview rationing using Redis.

Each user gets a fixed number of activity previews per UTC day.

Redis keys:
- preview:{user_id}:{YYYY-MM-DD} - Previews used today (expires after 24h)

Fail modes:
- Redis not configured: limits are not enforced (logged per reservation)
- Redis error: fail open
"""

from datetime import UTC, datetime
from uuid import UUID

from cofish.errors import ApiError, ApiErrorCode
from cofish.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DAILY_PREVIEW_LIMIT = 3
PREVIEW_TTL_SECONDS = 86400  # 24 hours


class PreviewQuota:
    """Per-user daily preview counter.

    Thread-safe for use in FastAPI endpoints.
    """

    def __init__(self, redis_client=None, daily_limit: int = DEFAULT_DAILY_PREVIEW_LIMIT):
        """Initialize the quota.

        Args:
            redis_client: Redis client instance (sync). If None, limits are not enforced.
            daily_limit: Previews allowed per user per UTC day.
        """
        self._redis = redis_client
        self._daily_limit = daily_limit

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    @property
    def redis_available(self) -> bool:
        if self._redis is None:
            return False
        try:
            self._redis.ping()
            return True
        except Exception:
            return False

    def _key(self, user_id: UUID) -> str:
        today = datetime.now(UTC).strftime("%Y-%m-%d")
        return f"preview:{user_id}:{today}"

    def used(self, user_id: UUID) -> int:
        """Previews used today; 0 when unknown."""
        if not self.redis_available:
            return 0
        try:
            value = self._redis.get(self._key(user_id))
            return int(value) if value else 0
        except Exception as e:
            logger.warning("preview_quota_read_failed", error=str(e))
            return 0

    def remaining(self, user_id: UUID) -> int | None:
        """Previews left today, or None when limits are not enforced."""
        if not self.redis_available:
            return None
        return max(0, self._daily_limit - self.used(user_id))

    def reserve(self, user_id: UUID) -> int | None:
        """Use one preview, or raise if today's previews are gone.

        The counter is incremented before it is compared, so two concurrent
        previews can never both take the last one. A rejected reservation is
        handed back.

        Returns:
            Previews remaining after this one, or None if unenforced.

        Raises:
            ApiError(E_PREVIEW_LIMIT_REACHED): Daily limit used up.
        """
        if not self.redis_available:
            logger.warning("preview_quota_redis_unavailable", check="preview")
            return None  # Fail open

        key = self._key(user_id)
        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, PREVIEW_TTL_SECONDS)
            results = pipe.execute()
            used = int(results[0])
        except Exception as e:
            logger.warning("preview_quota_reserve_failed", error=str(e))
            return None  # Fail open

        if used > self._daily_limit:
            try:
                self._redis.decr(key)
            except Exception as e:
                logger.warning("preview_quota_release_failed", error=str(e))
            logger.info("preview_quota_exhausted", daily_limit=self._daily_limit)
            raise ApiError(
                ApiErrorCode.E_PREVIEW_LIMIT_REACHED,
                f"Daily preview limit reached: {self._daily_limit} per day",
            )

        return self._daily_limit - used


# Global instance (initialized in app lifespan)
_preview_quota: PreviewQuota | None = None


def get_preview_quota() -> PreviewQuota:
    """Get the global preview quota, creating an unenforced one if unset."""
    global _preview_quota
    if _preview_quota is None:
        _preview_quota = PreviewQuota()
    return _preview_quota


def set_preview_quota(quota: PreviewQuota | None) -> None:
    """Set the global preview quota (app startup and tests)."""
    global _preview_quota
    _preview_quota = quota
