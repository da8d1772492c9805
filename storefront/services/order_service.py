# storefront/services/order_service.py
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.buyer import ReferralHistoryModel, SavedAddressModel
from storefront.data.models.order import CANCEL_REASONS, OrderItemModel, OrderModel
from storefront.data.models.product import ProductModel
from storefront.domain.discount import calculate_referral_discount, referral_reward_coins
from storefront.domain.errors import (
    ConcurrencyError,
    InsufficientCoinsError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
)
from storefront.domain.schemas import CheckoutIn, DirectCheckoutIn
from storefront.repos.buyer_repo import BuyerRepo
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import resolve_color
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.utils.retry import order_id_retry
from storefront.utils.settings import COIN_RATE, MAX_DISCOUNT_RATE, REFERRAL_REWARD_RATE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# normal flow only moves forward, cancelled is handled separately
STATUS_RANK = {"pending": 0, "processing": 1, "shipped": 2, "delivered": 3}
CANCELLABLE = ("pending", "processing", "shipped")

STATUS_MESSAGES = {
    "processing": "is being processed",
    "shipped": "has been shipped",
    "delivered": "has been delivered",
    "cancelled": "has been cancelled",
}


@dataclass
class OrderLine:
    product: ProductModel
    quantity: int
    price: Decimal
    color_name: str | None = None
    color_media: dict | None = None


class OrderService:
    """
    Order settlement.

    Creation debits coins, decrements stock and inserts the order in one
    transaction; side effects (order counts, saved address, notifications)
    run only after that commit and never fail the request.
    """

    def __init__(self, db: Session, notifier: NotificationService, lock_service: LockService):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.products = ProductRepo(db)
        self.buyers = BuyerRepo(db)
        self.notifier = notifier
        self.lock_service = lock_service

    # =====================================================
    # COMMANDS - creation
    # =====================================================
    def create_order_from_cart(self, buyer_id, payload: CheckoutIn) -> OrderModel:
        """
        Use Case: order from the selected cart lines.
        Lines stay in the cart, the buyer removes them explicitly.
        """
        with self.lock_service.buyer_checkout(buyer_id):
            order = self._settle(buyer_id, lambda: self._cart_lines(buyer_id), payload)
        self._after_commit(order, payload)
        return order

    def create_direct_order(self, buyer_id, payload: DirectCheckoutIn) -> OrderModel:
        """Use Case: order for a single product, bypassing the cart."""
        with self.lock_service.buyer_checkout(buyer_id):
            order = self._settle(buyer_id, lambda: self._direct_lines(payload), payload)
        self._after_commit(order, payload)
        return order

    def _cart_lines(self, buyer_id) -> list[OrderLine]:
        cart = self.carts.get_cart_by_buyer(buyer_id)
        if not cart or not cart.items:
            raise ValueError("Cart is empty")

        selected = cart.selected_items
        if not selected:
            raise ValueError("No items selected for order")

        lines = []
        seller_id = None
        for item in selected:
            product = self.products.get_product(item.product_id)
            if not product:
                raise NotFoundError("Product", item.product_id)

            #one order has one seller
            if seller_id is None:
                seller_id = product.seller_id
            elif product.seller_id != seller_id:
                raise ValueError("Selected items belong to different sellers, check them out separately")

            if product.stock < item.quantity:
                raise InsufficientStockError(f"Insufficient stock for product: {product.name}")

            lines.append(
                OrderLine(
                    product=product,
                    quantity=item.quantity,
                    price=item.price,
                    color_name=item.color_name,
                    color_media=item.color_media,
                )
            )
        return lines

    def _direct_lines(self, payload: DirectCheckoutIn) -> list[OrderLine]:
        if payload.quantity < 1:
            raise ValueError("Quantity must be at least 1")

        product = self.products.get_product(payload.product_id)
        if not product:
            raise NotFoundError("Product", payload.product_id)

        if product.stock < payload.quantity:
            raise InsufficientStockError("Insufficient stock")

        color_name, color_media = resolve_color(product, payload.selected_color)

        return [
            OrderLine(
                product=product,
                quantity=payload.quantity,
                price=product.unit_price,
                color_name=color_name,
                color_media=color_media,
            )
        ]

    @order_id_retry()
    def _settle(self, buyer_id, resolve_lines: Callable[[], list[OrderLine]], payload: CheckoutIn) -> OrderModel:
        try:
            buyer = self.buyers.get_buyer(buyer_id)
            if not buyer:
                raise NotFoundError("Buyer", buyer_id)

            lines = resolve_lines()
            if not lines:
                raise ValueError("No items to order")

            #allocated before coins or stock move, an exhausted day fails clean
            order_id = self.repo.next_order_id(datetime.now(timezone.utc).date())

            subtotal = sum((l.price * l.quantity for l in lines), Decimal("0.00"))
            delivery_price = lines[0].product.delivery_price or Decimal("0.00")

            referral_discount = Decimal("0.00")
            coins_used = 0

            if payload.use_referral_coins:
                quote = calculate_referral_discount(buyer.referral_coins, subtotal)
                logger.info(
                    f"Referral discount for buyer {buyer_id}: coins={quote.available_coins} "
                    f"max={quote.max_possible_discount} value={quote.coin_value} "
                    f"discount={quote.final_discount} coins_used={quote.coins_used}"
                )
                if quote.coins_used <= 0 or quote.final_discount <= 0:
                    raise ValueError("No referral coins available for a discount on this order")

                # update buyers set coins = coins - n where id = ? and coins >= n
                if not self.buyers.adjust_coins(buyer_id, -quote.coins_used):
                    raise InsufficientCoinsError("Insufficient referral coins")

                referral_discount = quote.final_discount
                coins_used = quote.coins_used

            for line in lines:
                if not self.products.decrement_stock(line.product.id, line.quantity):
                    raise InsufficientStockError(f"Insufficient stock for product: {line.product.name}")

            shipping = payload.shipping_address
            details = payload.payment_details
            order = OrderModel(
                order_id=order_id,
                buyer_id=buyer_id,
                seller_id=lines[0].product.seller_id,
                items=[
                    OrderItemModel(
                        product_id=l.product.id,
                        quantity=l.quantity,
                        price=l.price,
                        color_name=l.color_name,
                        color_media=l.color_media,
                    )
                    for l in lines
                ],
                status="pending",
                first_name=shipping.first_name,
                last_name=shipping.last_name,
                email=shipping.email,
                phone=shipping.phone,
                address=shipping.address,
                city=shipping.city,
                payment_method=payload.payment_method,
                payment_status="pending" if payload.payment_method == "cod" else "completed",
                payment_transaction_id=details.transaction_id if details else None,
                payment_phone_number=details.phone_number if details else None,
                total_amount=subtotal,
                delivery_price=delivery_price,
                referral_discount=referral_discount,
                coins_used=coins_used,
                coin_value_used=COIN_RATE,
            )
            order.recalculate_final_amount()

            self.repo.add_order(order)
            self.repo.commit()

        except Exception as e:
            logger.error(f"Order settlement for buyer {buyer_id} failed: {e}")
            self.repo.rollback()
            raise

        logger.info(
            f"Order {order.order_id} created for buyer {buyer_id}: "
            f"total={order.total_amount} delivery={order.delivery_price} "
            f"discount={order.referral_discount} final={order.final_amount}"
        )
        return order

    def _after_commit(self, order: OrderModel, payload: CheckoutIn) -> None:
        try:
            for item in order.items:
                self.products.increment_order_count(item.product_id, item.quantity)

            #address only saved once the order exists
            self.buyers.add_saved_address(
                SavedAddressModel(buyer_id=order.buyer_id, **payload.shipping_address.model_dump())
            )
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.warning(f"Post-commit bookkeeping for order {order.order_id} failed: {e}")

        self.notifier.notify(
            [order.seller_id],
            "NEW_ORDER",
            "New Order Received",
            f"You have received a new order #{order.order_id}",
            {"orderId": order.id, "orderNumber": order.order_id},
        )

    # =====================================================
    # COMMANDS - lifecycle
    # =====================================================
    def update_status(self, seller_id, order_pk, status: str, cancel_reason: str | None = None) -> OrderModel:
        """Use Case: seller moves the order forward (or cancels it)."""
        order = self._get_order_or_raise(order_pk)

        if order.seller_id != seller_id:
            raise PermissionError("Access denied")

        if status == "cancelled":
            return self._cancel(order, cancel_reason or "Other", cancelled_by="seller")

        previous = order.status
        self._check_forward_transition(previous, status)

        try:
            if not self.repo.transition_status(order.id, previous, status):
                raise ConcurrencyError("Order status was changed by another operation")

            referrer_id, reward = None, 0
            if status == "delivered":
                #the CAS above guarantees this block runs once per order
                referrer_id, reward = self._credit_referrer(order)

            self.repo.commit()
        except Exception as e:
            logger.error(f"Status update of order {order.order_id} to {status} failed: {e}")
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_id}: {previous} -> {status}")

        self._notify_status(order, status, previous)
        if reward > 0:
            buyer = self.buyers.get_buyer(order.buyer_id)
            self.notifier.notify(
                [referrer_id],
                "REWARD_EARNED",
                "Referral Reward Earned",
                f"You earned {reward} coins from {buyer.name}'s purchase!",
                {"coins": reward, "orderId": order.id, "referredUser": buyer.name},
            )
        return order

    def cancel_order(self, buyer_id, order_pk, cancel_reason: str | None = None) -> OrderModel:
        """Use Case: buyer cancels an order that was not delivered yet."""
        order = self._get_order_or_raise(order_pk)

        if order.buyer_id != buyer_id:
            raise PermissionError("Access denied")

        return self._cancel(order, cancel_reason or "Customer requested cancellation", cancelled_by="buyer")

    def _cancel(self, order: OrderModel, reason: str, cancelled_by: str) -> OrderModel:
        if reason not in CANCEL_REASONS:
            raise ValueError(f"Invalid cancel reason: {reason}")

        previous = order.status
        if previous not in CANCELLABLE:
            raise InvalidTransitionError(f"Order is already {previous} and cannot be cancelled")

        try:
            # a second concurrent cancel loses here and restores nothing
            if not self.repo.transition_status(order.id, previous, "cancelled", cancel_reason=reason):
                raise ConcurrencyError("Order status was changed by another operation")

            for item in order.items:
                self.products.increment_stock(item.product_id, item.quantity)

            self.repo.commit()
        except Exception as e:
            logger.error(f"Cancelling order {order.order_id} failed: {e}")
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_id} cancelled by {cancelled_by}: {reason}")

        buyer = self.buyers.get_buyer(order.buyer_id)
        data = {
            "orderId": order.id,
            "orderNumber": order.order_id,
            "buyerId": order.buyer_id,
            "orderStatus": "cancelled",
            "previousStatus": previous,
            "cancelReason": reason,
        }
        self.notifier.notify(
            [order.buyer_id],
            "ORDER_CANCELLED",
            "Order Cancelled",
            f"Your order #{order.order_id} {STATUS_MESSAGES['cancelled']}. Reason: {reason}",
            data,
        )
        by = buyer.name if cancelled_by == "buyer" and buyer else "the seller"
        self.notifier.notify(
            [order.seller_id],
            "ORDER_CANCELLED",
            "Order Cancelled",
            f"Order #{order.order_id} has been cancelled by {by}",
            data,
        )
        return order

    @staticmethod
    def _check_forward_transition(current: str, target: str) -> None:
        if current in ("delivered", "cancelled"):
            raise InvalidTransitionError(f"Order is already {current}")
        if target not in STATUS_RANK or STATUS_RANK[target] <= STATUS_RANK[current]:
            raise InvalidTransitionError(f"Cannot move order from {current} to {target}")

    def _credit_referrer(self, order: OrderModel):
        buyer = self.buyers.get_buyer(order.buyer_id)
        if not buyer or not buyer.referred_by_id:
            return None, 0

        reward = referral_reward_coins(order.total_amount, REFERRAL_REWARD_RATE)
        if reward <= 0:
            logger.info(f"Order {order.order_id} too small for a referral reward")
            return None, 0

        if not self.buyers.adjust_coins(buyer.referred_by_id, reward):
            logger.warning(f"Referrer {buyer.referred_by_id} of order {order.order_id} not found, reward skipped")
            return None, 0

        self.buyers.append_referral_history(
            ReferralHistoryModel(
                referrer_id=buyer.referred_by_id,
                referred_user_id=buyer.id,
                order_id=order.id,
                coins_earned=reward,
                order_amount=order.total_amount,
            )
        )
        logger.info(f"Referrer {buyer.referred_by_id} credited {reward} coins for order {order.order_id}")
        return buyer.referred_by_id, reward

    def _notify_status(self, order: OrderModel, status: str, previous: str) -> None:
        message = STATUS_MESSAGES.get(status, f"status updated to {status}")
        self.notifier.notify(
            [order.buyer_id],
            "ORDER_STATUS",
            "Order Status Updated",
            f"Order #{order.order_id} {message}",
            {"orderId": order.order_id, "status": status, "previousStatus": previous},
        )

    # =====================================================
    # QUERIES
    # =====================================================
    def _get_order_or_raise(self, order_pk) -> OrderModel:
        order = self.repo.get_order(order_pk)
        if not order:
            raise NotFoundError("Order", order_pk)
        return order

    def get_order(self, order_pk, actor_id) -> OrderModel:
        order = self._get_order_or_raise(order_pk)
        if actor_id not in (order.buyer_id, order.seller_id):
            raise PermissionError("Access denied")
        return order

    def get_order_confirmation(self, order_pk, actor_id) -> dict:
        """Amounts breakdown of a placed order, recomputed from its line snapshots."""
        order = self.get_order(order_pk, actor_id)

        product_subtotal = sum((i.price * i.quantity for i in order.items), Decimal("0.00"))
        delivery_price = order.delivery_price or Decimal("0.00")

        return {
            "order_id": order.order_id,
            "items": [
                {
                    "product_id": i.product_id,
                    "name": i.product.name if i.product else None,
                    "quantity": i.quantity,
                    "price": i.price,
                    "selected_color": i.selected_color,
                }
                for i in order.items
            ],
            "amounts": {
                "product_subtotal": product_subtotal,
                "delivery_price": delivery_price,
                "total_before_discount": product_subtotal + delivery_price,
                "referral_discount": order.referral_discount or Decimal("0.00"),
                "final_amount": order.final_amount,
            },
            "shipping_address": order.shipping_address,
            "payment_method": order.payment_method,
            "status": order.status,
            "created_at": order.created_at,
        }

    def list_buyer_orders(self, buyer_id) -> list[OrderModel]:
        return self.repo.list_buyer_orders(buyer_id)

    def list_seller_orders(self, seller_id, status=None, search=None, sort="createdAt", direction="desc", page=1, limit=20) -> dict:
        orders, total = self.repo.list_seller_orders(
            seller_id,
            status=status,
            search=search,
            sort=sort,
            direction=direction,
            page=page,
            limit=limit,
        )
        return {
            "orders": orders,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    def quote_referral_discount(self, buyer_id, total_amount: Decimal) -> dict:
        buyer = self.buyers.get_buyer(buyer_id)
        if not buyer:
            raise NotFoundError("Buyer", buyer_id)

        quote = calculate_referral_discount(buyer.referral_coins, total_amount)
        return {
            "available_coins": buyer.referral_coins,
            "max_discount": quote.final_discount,
            "max_discount_percentage": int(MAX_DISCOUNT_RATE * 100),
            "coins_used": quote.coins_used,
            "total_amount": total_amount,
            "final_amount": Decimal(total_amount) - quote.final_discount,
            "coin_value": COIN_RATE,
        }
