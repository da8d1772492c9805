# storefront/services/notification_service.py
import uuid

import redis
import requests
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.data.models.notification import NotificationModel
from storefront.repos.notification_repo import NotificationRepo
from storefront.services.push_client import PushClient
from storefront.services.realtime import RealtimePublisher
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Notification dispatcher used by settlement.
    Fire-and-forget: the work runs in a Celery worker, nothing is returned
    and a failure to enqueue never fails the caller.
    """

    def notify(self, recipient_ids, type: str, title: str, message: str, data: dict | None = None) -> None:
        recipients = [str(r) for r in recipient_ids if r is not None]
        if not recipients:
            return

        try:
            deliver_notification_task.delay(
                recipients,
                type,
                title,
                message,
                jsonable_encoder(data or {}),
            )
        except Exception as e:
            # broker unreachable etc, notifications are best-effort
            logger.warning(f"Failed to enqueue {type} notification for {recipients}: {e}")


def _payload(notification: NotificationModel) -> dict:
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "data": notification.data,
        "createdAt": notification.created_at.isoformat(),
    }


def deliver_notification(
    db: Session,
    recipient_ids: list[str],
    type: str,
    title: str,
    message: str,
    data: dict,
    publisher: RealtimePublisher,
    push_client: PushClient,
) -> list[NotificationModel]:
    """
    In-app record for every recipient, then realtime push and web push.
    Only the in-app insert is allowed to fail loudly.
    """
    repo = NotificationRepo(db)

    created = [
        repo.add_notification(
            NotificationModel(
                recipient_id=uuid.UUID(str(rid)),
                type=type,
                title=title,
                message=message,
                data=data,
            )
        )
        for rid in recipient_ids
    ]
    repo.commit()

    for notification in created:
        payload = _payload(notification)

        try:
            publisher.publish(notification.recipient_id, payload)
        except redis.RedisError as e:
            logger.warning(f"Realtime push to {notification.recipient_id} failed: {e}")

        for sub in repo.get_subscriptions(notification.recipient_id):
            subscription = {
                "endpoint": sub.endpoint,
                "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
            }
            try:
                delivered = push_client.send(subscription, payload)
            except requests.RequestException as e:
                logger.warning(f"Web push to {sub.endpoint} failed: {e}")
                continue

            if not delivered:
                logger.info(f"Push subscription {sub.endpoint} is gone, deleting")
                repo.delete_subscription(sub.id)

    repo.commit()
    return created


@celery_app.task(name="storefront.services.notification_service.deliver_notification_task")
def deliver_notification_task(recipient_ids, type, title, message, data):
    db = SessionLocal()
    try:
        created = deliver_notification(
            db,
            recipient_ids,
            type,
            title,
            message,
            data,
            publisher=RealtimePublisher(),
            push_client=PushClient(),
        )
        logger.info(f"[NOTIFICATION] {type} delivered to {len(created)} recipient(s)")
        return {"recipients": recipient_ids, "type": type, "status": "sent"}
    finally:
        db.close()
