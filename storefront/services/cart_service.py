from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.discount import max_discount_for, max_usable_coins
from storefront.domain.errors import ConcurrencyError, InsufficientStockError, NotFoundError
from storefront.repos.buyer_repo import BuyerRepo
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.settings import COIN_RATE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_color(product, selected_color: str | None) -> tuple[str | None, dict | None]:
    """Color name and its first media asset, or (None, None) for the plain variant."""
    if not selected_color:
        return None, None
    color = product.find_color(selected_color)
    if color is None:
        raise ValueError("Selected color not available for this product")
    media = color.get("media") or []
    return color["name"], (media[0] if media else None)


class CartService:
    """
    Use cases for the cart domain
    commands (add, update, remove, toggle, clear) modify state and bump the version
    queries (get, validate, preview) only read
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.buyers = BuyerRepo(db)

    @staticmethod
    def _item_view(item: CartItemModel) -> Dict[str, Any]:
        return {
            "product_id": item.product_id,
            "product_name": item.product.name if item.product else None,
            "quantity": item.quantity,
            "price": item.price,
            "is_selected": item.is_selected,
            "selected_color": item.selected_color,
        }

    def _cart_view(self, cart: CartModel | None, buyer_id) -> Dict[str, Any]:
        if cart is None:
            return {"cart_id": None, "buyer_id": buyer_id, "items": [], "total_amount": Decimal("0.00")}
        return {
            "cart_id": cart.id,
            "buyer_id": cart.buyer_id,
            "items": [self._item_view(i) for i in cart.items],
            "total_amount": cart.total_amount,
        }

    def _get_existing_cart(self, buyer_id) -> CartModel:
        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart:
            raise NotFoundError("Cart", buyer_id)
        return cart

    def _create_cart(self, buyer_id) -> CartModel:
        logger.info(f"Creating cart for buyer {buyer_id}")
        try:
            return self.repo.create_cart(CartModel(buyer_id=buyer_id, version=1, total_amount=Decimal("0.00")))
        except IntegrityError:
            # a concurrent first add created it, carts.buyer_id is unique
            self.repo.rollback()
            logger.info(f"Cart for buyer {buyer_id} created concurrently, reloading")
            cart = self.repo.get_cart_by_buyer(buyer_id)
            if cart is None:
                raise
            return cart

    def _save(self, cart: CartModel) -> None:
        #total recomputed before every persist
        cart.recalculate_total()

        # Optimistic locking: update carts set version = v + 1 where id = ? and version = v
        rowcount = self.repo.update_cart_version(cart.id, cart.version)
        if rowcount == 0:
            self.repo.rollback()
            raise ConcurrencyError(
                "Concurrency conflict - the cart was modified by another operation"
            )

        self.repo.commit()

    #query
    def get_cart(self, buyer_id) -> Dict[str, Any]:
        return self._cart_view(self.repo.get_cart_by_buyer(buyer_id), buyer_id)

    #commands
    def add_product(self, buyer_id, product_id, quantity: int = 1, selected_color: str | None = None) -> Dict[str, Any]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)

        color_name, color_media = resolve_color(product, selected_color)

        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart:
            if not self.buyers.get_buyer(buyer_id):
                raise NotFoundError("Buyer", buyer_id)
            cart = self._create_cart(buyer_id)

        existing_item = cart.find_item(product_id, color_name)
        if existing_item:
            logger.info(
                f"Product {product_id} ({color_name or 'no color'}) already in cart, "
                f"quantity {existing_item.quantity} -> {existing_item.quantity + quantity}"
            )
            existing_item.quantity += quantity
        else:
            logger.info(f"Adding product {product_id} ({color_name or 'no color'}) to cart {cart.id}")
            cart.items.append(
                CartItemModel(
                    product_id=product_id,
                    quantity=quantity,
                    price=product.unit_price,
                    is_selected=True,
                    color_name=color_name,
                    color_media=color_media,
                )
            )

        self._save(cart)
        return self.get_cart(buyer_id)

    def update_quantity(self, buyer_id, product_id, quantity: int, selected_color: str | None = None) -> Dict[str, Any]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        cart = self._get_existing_cart(buyer_id)
        item = cart.find_item(product_id, selected_color or None)
        if not item:
            raise NotFoundError("Cart item", product_id)

        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        if product.stock < quantity:
            raise InsufficientStockError("Insufficient stock")

        item.quantity = quantity
        self._save(cart)
        return self.get_cart(buyer_id)

    def remove_product(self, buyer_id, product_id, selected_color: str | None = None) -> Dict[str, Any]:
        """Removes exactly the (product, color-or-none) line; other variants stay."""
        cart = self._get_existing_cart(buyer_id)
        item = cart.find_item(product_id, selected_color or None)
        if not item:
            raise NotFoundError("Cart item", product_id)

        logger.info(f"Removing product {product_id} ({selected_color or 'no color'}) from cart {cart.id}")
        cart.items.remove(item)
        self._save(cart)
        return self.get_cart(buyer_id)

    def clear_cart(self, buyer_id) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_buyer(buyer_id)
        if cart:
            cart.items.clear()
            self._save(cart)
        return self.get_cart(buyer_id)

    def toggle_selection(self, buyer_id, product_id, selected_color: str | None = None) -> Dict[str, Any]:
        """Select exactly one line, every other line in the cart gets deselected."""
        cart = self._get_existing_cart(buyer_id)
        target = cart.find_item(product_id, selected_color or None)
        if not target:
            raise NotFoundError("Cart item", product_id)

        for item in cart.items:
            item.is_selected = item is target

        self._save(cart)
        return self.get_cart(buyer_id)

    def validate_for_checkout(self, buyer_id) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart or not cart.items:
            raise ValueError("Cart is empty")

        selected = cart.selected_items
        if not selected:
            raise ValueError("No items selected for checkout")

        #stock is re-checked live, add time does not reserve anything
        for item in selected:
            product = self.products.get_product(item.product_id)
            if not product or product.stock < item.quantity:
                name = product.name if product else "Unknown product"
                raise InsufficientStockError(f"Insufficient stock for product: {name}")

        return {
            "selected_items": [self._item_view(i) for i in selected],
            "total_amount": cart.total_amount,
        }

    def preview_direct_purchase(self, buyer_id, product_id, quantity: int = 1, selected_color: str | None = None) -> Dict[str, Any]:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        if product.stock < quantity:
            raise InsufficientStockError("Insufficient stock")

        color_name, color_media = resolve_color(product, selected_color)

        price = product.unit_price
        subtotal = price * quantity
        delivery_price = product.delivery_price or Decimal("0.00")

        buyer = self.buyers.get_buyer(buyer_id)
        available_coins = buyer.referral_coins if buyer else 0

        return {
            "product": {
                "id": product.id,
                "name": product.name,
                "price": price,
                "delivery_price": delivery_price,
            },
            "quantity": quantity,
            "selected_color": {"name": color_name, "media": color_media} if color_name else None,
            "amounts": {
                "subtotal": subtotal,
                "delivery_price": delivery_price,
                "total_amount": subtotal + delivery_price,
            },
            "referral": {
                "available_coins": available_coins,
                "max_usable_coins": max_usable_coins(subtotal),
                "coin_value": COIN_RATE,
                "max_possible_discount": max_discount_for(subtotal),
            },
        }
