import uuid
from decimal import Decimal

import pytest

from conftest import direct_checkout
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import BuyerCreate
from storefront.services.buyer_service import BuyerService, random_referral_code
from storefront.services.order_service import OrderService


def _register(svc, username, phone, referral_code=None):
    return svc.register_buyer(
        BuyerCreate(username=username, name=username.title(), phone_number=phone, referral_code=referral_code)
    )


def test_random_referral_code_shape():
    code = random_referral_code()
    assert len(code) == 8
    assert code == code.upper()


def test_registration_issues_a_code(db):
    buyer = _register(BuyerService(db), "ayesha", "03001234567")

    assert buyer.referral_code
    assert buyer.referral_coins == 0
    assert buyer.referred_by_id is None


def test_registration_with_referral_code_links_referrer(db):
    svc = BuyerService(db)
    referrer = _register(svc, "ayesha", "03001234567")

    friend = _register(svc, "bilal", "03007654321", referral_code=referrer.referral_code)

    assert friend.referred_by_id == referrer.id
    db.refresh(referrer)
    assert referrer.total_referrals == 1
    # coins only come with delivered orders
    assert referrer.referral_coins == 0


def test_unknown_referral_code_is_ignored(db):
    buyer = _register(BuyerService(db), "ayesha", "03001234567", referral_code="NOPE0000")

    assert buyer.referred_by_id is None


def test_duplicate_username_or_phone(db):
    svc = BuyerService(db)
    _register(svc, "ayesha", "03001234567")

    with pytest.raises(ValueError, match="already exists"):
        _register(svc, "ayesha", "03009999999")
    with pytest.raises(ValueError, match="already exists"):
        _register(svc, "other", "03001234567")


def test_code_generation_skips_taken_codes(db):
    codes = iter(["AAAA1111", "AAAA1111", "AAAA1111", "BBBB2222"])
    svc = BuyerService(db, code_factory=lambda: next(codes))

    first = _register(svc, "ayesha", "03001234567")
    second = _register(svc, "bilal", "03007654321")

    assert first.referral_code == "AAAA1111"
    assert second.referral_code == "BBBB2222"


def test_referral_code_is_issued_lazily(db, make):
    buyer = make.buyer(coins=12)
    svc = BuyerService(db, code_factory=lambda: "LAZY0001")

    result = svc.get_referral_code(buyer.id)

    assert result["referral_code"] == "LAZY0001"
    assert result["referral_link"].endswith("/LAZY0001")
    assert result["referral_coins"] == 12
    db.refresh(buyer)
    assert buyer.referral_code == "LAZY0001"

    # existing code is returned as is
    assert svc.get_referral_code(buyer.id)["referral_code"] == "LAZY0001"


def test_referral_stats_newest_first(db, make, notifier, lock_service):
    seller = make.seller()
    lamp = make.product(seller, price="1000.00", stock=10)
    referrer = make.buyer(referral_code="REF00001")
    friend = make.buyer(name="Friend", referred_by=referrer)
    orders = OrderService(db, notifier=notifier, lock_service=lock_service)

    for quantity in (1, 2):
        order = orders.create_direct_order(friend.id, direct_checkout(lamp.id, quantity=quantity))
        orders.update_status(seller.id, order.id, "delivered")

    stats = BuyerService(db).get_referral_stats(referrer.id)

    assert stats["referral_coins"] == 60
    assert [h["coins_earned"] for h in stats["referral_history"]] == [40, 20]
    assert stats["referral_history"][0]["referred_user_name"] == "Friend"
    assert stats["referral_history"][0]["order_amount"] == Decimal("2000")


def test_latest_saved_address(db, make, notifier, lock_service):
    seller = make.seller()
    lamp = make.product(seller, stock=10)
    buyer = make.buyer()
    svc = BuyerService(db)

    assert svc.get_latest_address(buyer.id) is None

    OrderService(db, notifier=notifier, lock_service=lock_service).create_direct_order(
        buyer.id, direct_checkout(lamp.id)
    )

    address = svc.get_latest_address(buyer.id)
    assert address.city == "Lahore"


def test_unknown_buyer(db):
    with pytest.raises(NotFoundError):
        BuyerService(db).get_buyer(uuid.uuid4())
