import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, JSON, String, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.discount import compute_final_amount

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")

CANCEL_REASONS = (
    "Location not serviceable",
    "Out of stock",
    "Customer requested cancellation",
    "Delivery issues",
    "Payment issues",
    "Other",
)

PAYMENT_METHODS = ("jazzcash", "easypaisa", "cod")


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(String(20), nullable=False, unique=True)  # ORD-YYYYMMDD-XXXX
    buyer_id = Column(Uuid, ForeignKey("buyers.id"), nullable=False, index=True)
    seller_id = Column(Uuid, ForeignKey("sellers.id"), nullable=False, index=True)

    status = Column(String, nullable=False, default="pending")
    cancel_reason = Column(String, nullable=True)

    # shipping address snapshot
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)

    payment_method = Column(String, nullable=False)
    payment_status = Column(String, nullable=False, default="pending")
    payment_transaction_id = Column(String, nullable=True)
    payment_phone_number = Column(String, nullable=True)

    total_amount = Column(Numeric(12, 2), nullable=False)
    delivery_price = Column(Numeric(10, 2), nullable=False, default=0)
    referral_discount = Column(Numeric(10, 2), nullable=False, default=0)
    coins_used = Column(Integer, nullable=False, default=0)
    coin_value_used = Column(Numeric(6, 4), nullable=False)
    final_amount = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )

    def recalculate_final_amount(self):
        #call after any change to total_amount, delivery_price or referral_discount
        self.final_amount = compute_final_amount(
            self.total_amount,
            self.delivery_price,
            self.referral_discount,
        )
        return self.final_amount

    @property
    def payable_amount(self):
        return self.final_amount

    @property
    def shipping_address(self) -> dict:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
        }


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_pk = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    color_name = Column(String, nullable=True)
    color_media = Column(JSON, nullable=True)

    order = relationship("OrderModel", back_populates="items")
    product = relationship("ProductModel")

    @property
    def selected_color(self) -> dict | None:
        if self.color_name is None:
            return None
        return {"name": self.color_name, "media": self.color_media}
