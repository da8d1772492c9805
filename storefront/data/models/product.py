# storefront/data/models/product.py
import uuid

from sqlalchemy import Column, ForeignKey, Integer, JSON, Numeric, String, Uuid, CheckConstraint

from storefront.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id = Column(Uuid, ForeignKey("sellers.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=True)
    delivery_price = Column(Numeric(10, 2), nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    order_count = Column(Integer, nullable=False, default=0)

    # [{"name": "Red", "media": [{"type": "image", "url": ..., "public_id": ..., "thumbnail": ...}]}]
    colors = Column(JSON, nullable=False, default=list)

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)

    @property
    def unit_price(self):
        return self.sale_price if self.sale_price is not None else self.price

    def find_color(self, name: str) -> dict | None:
        for color in self.colors or []:
            if color.get("name") == name:
                return color
        return None
