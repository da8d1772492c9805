# storefront/api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.services.buyer_service import BuyerService
from storefront.services.cart_service import CartService
from storefront.services.inbox_service import InboxService
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService


def get_lock_service() -> LockService:
    return LockService()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


def get_buyer_service(db: Session = Depends(get_db)) -> BuyerService:
    return BuyerService(db)


def get_inbox_service(db: Session = Depends(get_db)) -> InboxService:
    return InboxService(db)


def get_order_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
    lock_service: LockService = Depends(get_lock_service),
) -> OrderService:
    return OrderService(db, notifier=notifier, lock_service=lock_service)
