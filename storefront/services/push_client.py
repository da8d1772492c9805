# storefront/services/push_client.py
import requests

from storefront.utils.retry import http_retry
from storefront.utils.settings import PUSH_GATEWAY_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#push service answers these when the browser subscription no longer exists
GONE_STATUSES = (404, 410)


class PushClient:
    """HTTP client for the web push gateway (VAPID signing happens there)."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PUSH_GATEWAY_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def send(self, subscription: dict, payload: dict) -> bool:
        """
        Deliver one payload to one subscription.
        Returns False when the subscription is gone and should be deleted.
        """
        url = f"{self.base_url}/send"
        logger.info(f"PushClient POST {url} endpoint={subscription.get('endpoint')}")

        resp = requests.post(
            url,
            json={"subscription": subscription, "payload": payload},
            timeout=self.timeout,
        )
        if resp.status_code in GONE_STATUSES:
            return False
        resp.raise_for_status()
        return True
