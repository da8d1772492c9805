# storefront/api/routers/notifications.py
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_inbox_service
from storefront.domain.schemas import NotificationOut, PushSubscriptionIn
from storefront.services.inbox_service import InboxService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=List[NotificationOut])
def list_notifications(
    recipient_id: UUID = Query(...),
    unread: bool = Query(False),
    search: Optional[str] = Query(None, description="Matches title or message"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: InboxService = Depends(get_inbox_service),
):
    return svc.list_notifications(recipient_id, unread_only=unread, search=search, page=page, limit=limit)


@router.put("/read-all")
def mark_all_read(
    recipient_id: UUID = Query(...),
    svc: InboxService = Depends(get_inbox_service),
):
    return {"updated": svc.mark_all_read(recipient_id)}


@router.get("/{notification_id}", response_model=NotificationOut)
def get_notification(
    notification_id: UUID,
    recipient_id: UUID = Query(...),
    svc: InboxService = Depends(get_inbox_service),
):
    return svc.get_notification(recipient_id, notification_id)


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: UUID,
    recipient_id: UUID = Query(...),
    svc: InboxService = Depends(get_inbox_service),
):
    return svc.mark_read(recipient_id, notification_id)


@router.post("/subscriptions", status_code=201)
def register_subscription(
    payload: PushSubscriptionIn,
    recipient_id: UUID = Query(...),
    svc: InboxService = Depends(get_inbox_service),
):
    subscription = svc.register_subscription(recipient_id, payload)
    return {"id": subscription.id, "endpoint": subscription.endpoint}
