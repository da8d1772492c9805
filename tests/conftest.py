import os

# in-memory sqlite shared through StaticPool, must be set before storefront is imported
os.environ["DATABASE_URL"] = "sqlite://"

from contextlib import contextmanager
from decimal import Decimal

import pytest

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import BuyerModel, ProductModel, SellerModel
from storefront.domain.errors import ConcurrencyError
from storefront.domain.schemas import CheckoutIn, DirectCheckoutIn


class FakeLockService:
    """In-process stand-in for the Redis checkout lock."""

    def __init__(self):
        self.held = set()
        self.acquired = []

    @contextmanager
    def buyer_checkout(self, buyer_id):
        if buyer_id in self.held:
            raise ConcurrencyError("Another checkout for this buyer is already in progress")
        self.held.add(buyer_id)
        self.acquired.append(buyer_id)
        try:
            yield "token"
        finally:
            self.held.discard(buyer_id)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, recipient_ids, type, title, message, data=None):
        self.sent.append(
            {
                "recipients": list(recipient_ids),
                "type": type,
                "title": title,
                "message": message,
                "data": data or {},
            }
        )

    def of_type(self, type):
        return [n for n in self.sent if n["type"] == type]


class Factory:
    def __init__(self, db):
        self.db = db
        self._buyers = 0

    def seller(self, name="Seller"):
        seller = SellerModel(name=name)
        self.db.add(seller)
        self.db.commit()
        return seller

    def product(self, seller, name="Product", price="100.00", stock=10, delivery_price="0.00", sale_price=None, colors=None):
        product = ProductModel(
            seller_id=seller.id,
            name=name,
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price is not None else None,
            delivery_price=Decimal(delivery_price),
            stock=stock,
            colors=colors or [],
        )
        self.db.add(product)
        self.db.commit()
        return product

    def buyer(self, name="Buyer", coins=0, referred_by=None, referral_code=None):
        self._buyers += 1
        buyer = BuyerModel(
            username=f"buyer{self._buyers}",
            name=name,
            phone_number=f"0300000{self._buyers:04d}",
            referral_code=referral_code,
            referral_coins=coins,
            referred_by_id=referred_by.id if referred_by else None,
        )
        self.db.add(buyer)
        self.db.commit()
        return buyer


SHIPPING = {
    "first_name": "Ayesha",
    "last_name": "Khan",
    "email": "ayesha@example.com",
    "phone": "03001234567",
    "address": "12 Mall Road",
    "city": "Lahore",
}


def checkout(payment_method="cod", use_referral_coins=False, **extra):
    return CheckoutIn(
        shipping_address=SHIPPING,
        payment_method=payment_method,
        use_referral_coins=use_referral_coins,
        **extra,
    )


def direct_checkout(product_id, quantity=1, selected_color=None, payment_method="cod", use_referral_coins=False, payment_details=None):
    return DirectCheckoutIn(
        shipping_address=SHIPPING,
        payment_method=payment_method,
        payment_details=payment_details,
        use_referral_coins=use_referral_coins,
        product_id=product_id,
        quantity=quantity,
        selected_color=selected_color,
    )


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def lock_service():
    return FakeLockService()
