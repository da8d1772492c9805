import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, JSON, String, Uuid

from storefront.data.database import Base

NOTIFICATION_TYPES = ("NEW_ORDER", "ORDER_STATUS", "ORDER_CANCELLED", "REWARD_EARNED")


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # buyer or seller id, ids are uuids so the two never collide
    recipient_id = Column(Uuid, nullable=False, index=True)

    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


class PushSubscriptionModel(Base):
    __tablename__ = "push_subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(Uuid, nullable=False, index=True)
    endpoint = Column(String, nullable=False, unique=True)
    p256dh = Column(String, nullable=False)
    auth = Column(String, nullable=False)
