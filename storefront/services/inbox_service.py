# storefront/services/inbox_service.py
from sqlalchemy.orm import Session

from storefront.data.models.notification import NotificationModel, PushSubscriptionModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import PushSubscriptionIn
from storefront.repos.notification_repo import NotificationRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InboxService:
    """Read side of notifications plus push subscription registration."""

    def __init__(self, db: Session):
        self.repo = NotificationRepo(db)

    def list_notifications(
        self, recipient_id, unread_only: bool = False, search: str | None = None, page: int = 1, limit: int = 20
    ) -> list[NotificationModel]:
        return self.repo.list_notifications(
            recipient_id, unread_only=unread_only, search=search, page=page, limit=limit
        )

    def _get_own(self, recipient_id, notification_id) -> NotificationModel:
        notification = self.repo.get_notification(notification_id)
        if not notification:
            raise NotFoundError("Notification", notification_id)
        if notification.recipient_id != recipient_id:
            raise PermissionError("Access denied")
        return notification

    def get_notification(self, recipient_id, notification_id) -> NotificationModel:
        """Opening a notification marks it read."""
        notification = self._get_own(recipient_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            self.repo.commit()
        return notification

    def mark_read(self, recipient_id, notification_id) -> NotificationModel:
        notification = self._get_own(recipient_id, notification_id)
        notification.is_read = True
        self.repo.commit()
        return notification

    def mark_all_read(self, recipient_id) -> int:
        count = self.repo.mark_all_read(recipient_id)
        self.repo.commit()
        return count

    def register_subscription(self, recipient_id, payload: PushSubscriptionIn) -> PushSubscriptionModel:
        #upsert by endpoint, a browser re-subscribing may rotate its keys
        subscription = self.repo.get_subscription_by_endpoint(payload.endpoint)
        if subscription:
            subscription.recipient_id = recipient_id
            subscription.p256dh = payload.keys.p256dh
            subscription.auth = payload.keys.auth
        else:
            subscription = self.repo.add_subscription(
                PushSubscriptionModel(
                    recipient_id=recipient_id,
                    endpoint=payload.endpoint,
                    p256dh=payload.keys.p256dh,
                    auth=payload.keys.auth,
                )
            )
        self.repo.commit()
        logger.info(f"Push subscription registered for {recipient_id}")
        return subscription
