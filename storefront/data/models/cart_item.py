from sqlalchemy import Boolean, Column, Integer, ForeignKey, JSON, Numeric, String, Uuid, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)
    is_selected = Column(Boolean, nullable=False, default=True)

    color_name = Column(String, nullable=True)
    color_media = Column(JSON, nullable=True)

    cart = relationship("CartModel", back_populates="items")
    product = relationship("ProductModel")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "color_name", name="u_cart_product_color"),
        CheckConstraint("quantity >= 1", name="ck_cart_item_quantity"),
    )

    @property
    def selected_color(self) -> dict | None:
        if self.color_name is None:
            return None
        return {"name": self.color_name, "media": self.color_media}
