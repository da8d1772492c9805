# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.data.models.notification import NOTIFICATION_TYPES
from storefront.data.models.order import CANCEL_REASONS, ORDER_STATUSES, PAYMENT_METHODS

OrderStatus = Literal[ORDER_STATUSES]
PaymentMethod = Literal[PAYMENT_METHODS]
CancelReason = Literal[CANCEL_REASONS]
NotificationType = Literal[NOTIFICATION_TYPES]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase on input, emits camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------- buyers

class BuyerCreate(CamelModel):
    """Buyer registration."""

    username: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., min_length=5, max_length=20)
    referral_code: Optional[str] = Field(None, description="Code of the buyer who referred this one")


class BuyerOut(CamelModel):
    id: UUID
    username: str
    name: str
    phone_number: str
    referral_code: Optional[str] = None
    referral_coins: int
    total_referrals: int


class ReferralCodeOut(CamelModel):
    referral_code: str
    referral_link: str
    referral_coins: int
    total_referrals: int


class ReferralHistoryOut(CamelModel):
    referred_user_id: UUID
    referred_user_name: Optional[str] = None
    coins_earned: int
    order_amount: Decimal
    created_at: datetime


class ReferralStatsOut(CamelModel):
    total_referrals: int
    referral_coins: int
    referral_history: List[ReferralHistoryOut]


# ---------------------------------------------------------------- cart

class SelectedColorOut(CamelModel):
    name: str
    media: Optional[dict] = None


class CartItemIn(CamelModel):
    """Adding a product (optionally a color variant) to the cart."""

    product_id: UUID
    quantity: int = Field(1, ge=1, description="Must be at least 1")
    selected_color: Optional[str] = Field(None, description="Color variant name")


class CartItemUpdate(CamelModel):
    product_id: UUID
    quantity: int
    selected_color: Optional[str] = None


class CartLineKey(CamelModel):
    """Exact (product, color-or-none) key of a cart line."""

    product_id: UUID
    selected_color: Optional[str] = None


class CartItemOut(CamelModel):
    product_id: UUID
    product_name: Optional[str] = None
    quantity: int
    price: Decimal
    is_selected: bool
    selected_color: Optional[SelectedColorOut] = None


class CartOut(CamelModel):
    cart_id: Optional[UUID] = None
    buyer_id: UUID
    items: List[CartItemOut]
    total_amount: Decimal


class CheckoutValidationOut(CamelModel):
    selected_items: List[CartItemOut]
    total_amount: Decimal


class DirectPurchaseIn(CamelModel):
    product_id: UUID
    quantity: int = Field(1, ge=1)
    selected_color: Optional[str] = None


class DirectPurchaseProductOut(CamelModel):
    id: UUID
    name: str
    price: Decimal
    delivery_price: Decimal


class DirectPurchaseAmountsOut(CamelModel):
    subtotal: Decimal
    delivery_price: Decimal
    total_amount: Decimal


class DirectPurchaseReferralOut(CamelModel):
    available_coins: int
    max_usable_coins: int
    coin_value: Decimal
    max_possible_discount: Decimal


class DirectPurchaseOut(CamelModel):
    product: DirectPurchaseProductOut
    quantity: int
    selected_color: Optional[SelectedColorOut] = None
    amounts: DirectPurchaseAmountsOut
    referral: DirectPurchaseReferralOut


# ---------------------------------------------------------------- orders

class ShippingAddressIn(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=5)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)


class ShippingAddressOut(CamelModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str


class SavedAddressOut(ShippingAddressOut):
    created_at: datetime


class PaymentDetailsIn(CamelModel):
    transaction_id: Optional[str] = None
    phone_number: Optional[str] = None


class CheckoutIn(CamelModel):
    """Order from the selected cart lines."""

    shipping_address: ShippingAddressIn
    payment_method: PaymentMethod
    payment_details: Optional[PaymentDetailsIn] = None
    use_referral_coins: bool = False


class DirectCheckoutIn(CheckoutIn):
    """Order for one product, bypassing the cart."""

    product_id: UUID
    quantity: int = Field(1, ge=1)
    selected_color: Optional[str] = None


class DiscountQuoteIn(CamelModel):
    total_amount: Decimal = Field(..., ge=0)


class DiscountQuoteOut(CamelModel):
    available_coins: int
    max_discount: Decimal
    max_discount_percentage: int
    coins_used: int
    total_amount: Decimal
    final_amount: Decimal
    coin_value: Decimal


class OrderStatusIn(CamelModel):
    status: OrderStatus
    cancel_reason: Optional[CancelReason] = None


class OrderCancelIn(CamelModel):
    cancel_reason: Optional[CancelReason] = None


class OrderItemOut(CamelModel):
    product_id: UUID
    quantity: int
    price: Decimal
    selected_color: Optional[SelectedColorOut] = None


class OrderOut(CamelModel):
    id: UUID
    order_id: str
    buyer_id: UUID
    seller_id: UUID
    items: List[OrderItemOut]
    status: OrderStatus
    cancel_reason: Optional[str] = None
    shipping_address: ShippingAddressOut
    payment_method: PaymentMethod
    payment_status: str
    total_amount: Decimal
    delivery_price: Decimal
    referral_discount: Decimal
    coins_used: int
    coin_value_used: Decimal
    final_amount: Decimal
    payable_amount: Decimal
    created_at: datetime
    updated_at: datetime


class OrderConfirmationItemOut(CamelModel):
    product_id: UUID
    name: Optional[str] = None
    quantity: int
    price: Decimal
    selected_color: Optional[SelectedColorOut] = None


class OrderAmountsOut(CamelModel):
    product_subtotal: Decimal
    delivery_price: Decimal
    total_before_discount: Decimal
    referral_discount: Decimal
    final_amount: Decimal


class OrderConfirmationOut(CamelModel):
    """What the buyer sees right after checkout."""

    order_id: str
    items: List[OrderConfirmationItemOut]
    amounts: OrderAmountsOut
    shipping_address: ShippingAddressOut
    payment_method: PaymentMethod
    status: OrderStatus
    created_at: datetime


class OrderListOut(CamelModel):
    orders: List[OrderOut]
    total: int
    total_pages: int


# ---------------------------------------------------------------- notifications

class NotificationOut(CamelModel):
    id: UUID
    type: NotificationType
    title: str
    message: str
    data: dict
    is_read: bool
    created_at: datetime


class PushKeysIn(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionIn(CamelModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushKeysIn
