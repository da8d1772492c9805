#storefront/data/models/cart.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    buyer_id = Column(Uuid, ForeignKey("buyers.id"), nullable=False, unique=True)

    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )

    def recalculate_total(self) -> Decimal:
        #only selected lines count towards the total
        self.total_amount = sum(
            (i.price * i.quantity for i in self.items if i.is_selected),
            Decimal("0.00"),
        )
        self.updated_at = datetime.now(timezone.utc)
        return self.total_amount

    def find_item(self, product_id, color_name: str | None):
        for item in self.items:
            if item.product_id == product_id and item.color_name == color_name:
                return item
        return None

    @property
    def selected_items(self):
        return [i for i in self.items if i.is_selected]
