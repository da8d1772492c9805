# storefront/repos/notification_repo.py
from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.notification import NotificationModel, PushSubscriptionModel


class NotificationRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_notification(self, notification: NotificationModel) -> NotificationModel:
        self.db.add(notification)
        return notification

    def get_notification(self, notification_id) -> NotificationModel | None:
        return self.db.get(NotificationModel, notification_id)

    def list_notifications(
        self,
        recipient_id,
        unread_only: bool = False,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ):
        query = select(NotificationModel).where(NotificationModel.recipient_id == recipient_id)
        if unread_only:
            query = query.where(NotificationModel.is_read.is_(False))
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(NotificationModel.title.ilike(pattern), NotificationModel.message.ilike(pattern))
            )
        query = (
            query.order_by(NotificationModel.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.db.execute(query).scalars())

    def mark_all_read(self, recipient_id) -> int:
        result = self.db.execute(
            update(NotificationModel)
            .where(NotificationModel.recipient_id == recipient_id, NotificationModel.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def get_subscriptions(self, recipient_id) -> list[PushSubscriptionModel]:
        return list(
            self.db.execute(
                select(PushSubscriptionModel).where(PushSubscriptionModel.recipient_id == recipient_id)
            ).scalars()
        )

    def get_subscription_by_endpoint(self, endpoint: str) -> PushSubscriptionModel | None:
        return self.db.execute(
            select(PushSubscriptionModel).where(PushSubscriptionModel.endpoint == endpoint)
        ).scalar_one_or_none()

    def add_subscription(self, subscription: PushSubscriptionModel) -> PushSubscriptionModel:
        self.db.add(subscription)
        return subscription

    def delete_subscription(self, subscription_id) -> None:
        self.db.execute(
            delete(PushSubscriptionModel)
            .where(PushSubscriptionModel.id == subscription_id)
            .execution_options(synchronize_session=False)
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
