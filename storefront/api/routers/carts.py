# storefront/api/routers/carts.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_cart_service
from storefront.domain.schemas import (
    CartItemIn,
    CartItemUpdate,
    CartLineKey,
    CartOut,
    CheckoutValidationOut,
    DirectPurchaseIn,
    DirectPurchaseOut,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("/", response_model=CartOut)
def get_cart(
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_cart(buyer_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.add_product(
        buyer_id=buyer_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        selected_color=payload.selected_color,
    )


@router.put("/items", response_model=CartOut)
def update_item(
    payload: CartItemUpdate,
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.update_quantity(
        buyer_id=buyer_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        selected_color=payload.selected_color,
    )


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: UUID,
    buyer_id: UUID = Query(...),
    selected_color: Optional[str] = Query(None, alias="selectedColor"),
    svc: CartService = Depends(get_cart_service),
):
    return svc.remove_product(buyer_id, product_id, selected_color)


@router.delete("/", response_model=CartOut)
def clear_cart(
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.clear_cart(buyer_id)


@router.put("/selection", response_model=CartOut)
def toggle_selection(
    payload: CartLineKey,
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.toggle_selection(buyer_id, payload.product_id, payload.selected_color)


@router.get("/validate-checkout", response_model=CheckoutValidationOut)
def validate_checkout(
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.validate_for_checkout(buyer_id)


@router.post("/validate-direct-purchase", response_model=DirectPurchaseOut)
def validate_direct_purchase(
    payload: DirectPurchaseIn,
    buyer_id: UUID = Query(...),
    svc: CartService = Depends(get_cart_service),
):
    return svc.preview_direct_purchase(
        buyer_id,
        payload.product_id,
        quantity=payload.quantity,
        selected_color=payload.selected_color,
    )
