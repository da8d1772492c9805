# storefront/services/realtime.py
import json

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class RealtimePublisher:
    """
    Realtime push over redis pub/sub.
    The socket gateway subscribes to notifications:<recipient_id> and forwards
    every message to the recipient's open connections.
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def channel(recipient_id) -> str:
        return f"notifications:{recipient_id}"

    @redis_retry()
    def publish(self, recipient_id, payload: dict) -> int:
        channel = self.channel(recipient_id)
        logger.info(f"PUBLISH {channel} type={payload.get('type')}")
        return self.redis.publish(channel, json.dumps(payload))
