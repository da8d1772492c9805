# storefront/repos/cart_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_buyer(self, buyer_id) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.buyer_id == buyer_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def update_cart_version(self, cart_id, old_version: int) -> int:
        #optimistic locking: update set version = v + 1 where id = ? and version = v
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(version=old_version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
