import uuid
from contextlib import contextmanager

import redis
from storefront.domain.errors import ConcurrencyError
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, CHECKOUT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#compare-and-delete in one Lua call, redis runs scripts atomically
#so nobody can slip in between GET and DEL and we never drop someone else's lock
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    Per-buyer checkout lock.

    Serialises checkouts of a single buyer so two tabs cannot both spend the
    same coins. The conditional SQL updates stay the real guard; the lock only
    turns a race into a clean "checkout in progress" error.
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(buyer_id) -> str:
        return f"buyer:{buyer_id}:checkout:lock"

    @redis_retry()
    def acquire_buyer_lock(self, buyer_id, token: str, ttl: int = CHECKOUT_LOCK_TTL_SECONDS) -> bool:
        key = self._key(buyer_id)
        logger.info(f"Acquire lock {key}")
        #SET buyer:<id>:checkout:lock <token> NX EX <ttl>, expires on its own if we crash
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_buyer_lock(self, buyer_id, token: str) -> bool:
        key = self._key(buyer_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def buyer_checkout(self, buyer_id):
        token = uuid.uuid4().hex
        if not self.acquire_buyer_lock(buyer_id, token):
            raise ConcurrencyError("Another checkout for this buyer is already in progress")
        try:
            yield token
        finally:
            try:
                self.release_buyer_lock(buyer_id, token)
            except redis.RedisError as e:
                #lock expires by itself after ttl
                logger.warning(f"Failed to release checkout lock for buyer {buyer_id}: {e}")
