# kibbledrop/services/event_guard.py
import redis
from redis.exceptions import RedisError

from kibbledrop.utils.retry import redis_retry
from kibbledrop.utils.settings import REDIS_URL, WEBHOOK_EVENT_TTL_SECONDS
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)


class EventGuard:
    """
    Remembers webhook event ids so a redelivered event is acknowledged
    without being applied twice.
    - SET NX EX: first writer wins, keys expire on their own
    - if redis is down the event is processed anyway, transitions are idempotent by value
    """

    def __init__(self, url: str | None = None, ttl: int | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.ttl = ttl or WEBHOOK_EVENT_TTL_SECONDS

    @staticmethod
    def _key(provider: str, event_id: str) -> str:
        return f"webhook:{provider}:{event_id}"

    @redis_retry()
    def _mark(self, key: str) -> bool:
        return bool(self.redis.set(name=key, value="1", nx=True, ex=self.ttl))

    @redis_retry()
    def _unmark(self, key: str):
        self.redis.delete(key)

    def first_delivery(self, provider: str, event_id: str) -> bool:
        key = self._key(provider, event_id)
        try:
            first = self._mark(key)
        except RedisError as e:
            logger.warning(f"Webhook dedup unavailable for {key}, processing anyway: {e}")
            return True
        if not first:
            logger.info(f"Duplicate webhook {key} ignored")
        return first

    def forget(self, provider: str, event_id: str):
        """Called when processing failed so the gateway's retry is not treated as a duplicate."""
        key = self._key(provider, event_id)
        try:
            self._unmark(key)
        except RedisError as e:
            logger.warning(f"Failed to release webhook key {key}: {e}")
