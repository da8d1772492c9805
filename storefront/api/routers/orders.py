# storefront/api/routers/orders.py
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_order_service
from storefront.domain.schemas import (
    CheckoutIn,
    DirectCheckoutIn,
    DiscountQuoteIn,
    DiscountQuoteOut,
    OrderCancelIn,
    OrderConfirmationOut,
    OrderListOut,
    OrderOut,
    OrderStatusIn,
)
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: CheckoutIn,
    buyer_id: UUID = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    """
    Creates an order from the selected cart lines.
    Notifies the seller asynchronously.
    """
    return svc.create_order_from_cart(buyer_id, payload)


@router.post("/direct-purchase", response_model=OrderOut, status_code=201)
def create_direct_order(
    payload: DirectCheckoutIn,
    buyer_id: UUID = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    return svc.create_direct_order(buyer_id, payload)


@router.post("/calculate-discount", response_model=DiscountQuoteOut)
def calculate_discount(
    payload: DiscountQuoteIn,
    buyer_id: UUID = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    return svc.quote_referral_discount(buyer_id, payload.total_amount)


@router.get("/", response_model=List[OrderOut])
def list_orders(
    buyer_id: UUID = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_buyer_orders(buyer_id)


@router.get("/seller", response_model=OrderListOut)
def list_seller_orders(
    seller_id: UUID = Query(...),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort: str = Query("createdAt"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: OrderService = Depends(get_order_service),
):
    return svc.list_seller_orders(
        seller_id,
        status=status,
        search=search,
        sort=sort,
        direction=order,
        page=page,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: UUID,
    actor_id: UUID = Query(..., description="Buyer or seller of the order"),
    svc: OrderService = Depends(get_order_service),
):
    return svc.get_order(order_id, actor_id)


@router.get("/{order_id}/confirmation", response_model=OrderConfirmationOut)
def get_order_confirmation(
    order_id: UUID,
    actor_id: UUID = Query(..., description="Buyer or seller of the order"),
    svc: OrderService = Depends(get_order_service),
):
    return svc.get_order_confirmation(order_id, actor_id)


@router.put("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: UUID,
    payload: OrderStatusIn,
    seller_id: UUID = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    return svc.update_status(seller_id, order_id, payload.status, payload.cancel_reason)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: UUID,
    payload: OrderCancelIn | None = None,
    buyer_id: UUID = Query(...),
    svc: OrderService = Depends(get_order_service),
):
    reason = payload.cancel_reason if payload else None
    return svc.cancel_order(buyer_id, order_id, reason)
