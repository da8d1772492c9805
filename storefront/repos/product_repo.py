# storefront/repos/product_repo.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    """
    Catalog access used by settlement.
    Stock changes are conditional UPDATEs, never read-then-write.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def decrement_stock(self, product_id, quantity: int) -> bool:
        #update set stock = stock - q where id = ? and stock >= q
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_stock(self, product_id, quantity: int) -> bool:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_order_count(self, product_id, quantity: int = 1) -> None:
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(order_count=ProductModel.order_count + quantity)
            .execution_options(synchronize_session=False)
        )
