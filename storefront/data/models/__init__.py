#every model imported here so Base.metadata knows all tables before create_all

from storefront.data.models.seller import SellerModel
from storefront.data.models.product import ProductModel
from storefront.data.models.buyer import BuyerModel, ReferralHistoryModel, SavedAddressModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.notification import NotificationModel, PushSubscriptionModel

__all__ = [
    "SellerModel",
    "ProductModel",
    "BuyerModel",
    "ReferralHistoryModel",
    "SavedAddressModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "NotificationModel",
    "PushSubscriptionModel",
]
