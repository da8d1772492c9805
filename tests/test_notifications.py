import uuid

import pytest
import redis
import requests

from storefront.data.models import NotificationModel, PushSubscriptionModel
from storefront.domain.errors import ConcurrencyError, NotFoundError
from storefront.domain.schemas import PushSubscriptionIn
from storefront.services import notification_service
from storefront.services.inbox_service import InboxService
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService, deliver_notification
from storefront.services.push_client import PushClient


class FakePublisher:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    def publish(self, recipient_id, payload):
        if self.fail:
            raise redis.ConnectionError("redis down")
        self.published.append((recipient_id, payload))
        return 1


class FakePushClient:
    def __init__(self, gone=(), broken=()):
        self.gone = set(gone)
        self.broken = set(broken)
        self.sent = []

    def send(self, subscription, payload):
        endpoint = subscription["endpoint"]
        if endpoint in self.broken:
            raise requests.ConnectionError("gateway down")
        self.sent.append(endpoint)
        return endpoint not in self.gone


def _subscribe(db, recipient_id, endpoint):
    db.add(PushSubscriptionModel(recipient_id=recipient_id, endpoint=endpoint, p256dh="key", auth="secret"))
    db.commit()


def test_deliver_records_publishes_and_pushes(db):
    seller_id = uuid.uuid4()
    _subscribe(db, seller_id, "https://push.example/live")
    publisher, push = FakePublisher(), FakePushClient()

    created = deliver_notification(
        db, [str(seller_id)], "NEW_ORDER", "New Order Received", "You have received a new order #ORD-1",
        {"orderNumber": "ORD-1"}, publisher=publisher, push_client=push,
    )

    assert len(created) == 1
    stored = db.query(NotificationModel).one()
    assert stored.recipient_id == seller_id
    assert stored.is_read is False
    assert stored.data == {"orderNumber": "ORD-1"}

    assert publisher.published[0][0] == seller_id
    assert publisher.published[0][1]["type"] == "NEW_ORDER"
    assert push.sent == ["https://push.example/live"]


def test_gone_subscription_is_deleted(db):
    buyer_id = uuid.uuid4()
    _subscribe(db, buyer_id, "https://push.example/live")
    _subscribe(db, buyer_id, "https://push.example/expired")

    deliver_notification(
        db, [str(buyer_id)], "ORDER_STATUS", "Order Status Updated", "Order #ORD-1 has been shipped", {},
        publisher=FakePublisher(), push_client=FakePushClient(gone={"https://push.example/expired"}),
    )

    endpoints = [s.endpoint for s in db.query(PushSubscriptionModel).all()]
    assert endpoints == ["https://push.example/live"]


def test_transport_failures_are_swallowed(db):
    buyer_id = uuid.uuid4()
    _subscribe(db, buyer_id, "https://push.example/live")

    created = deliver_notification(
        db, [str(buyer_id)], "ORDER_CANCELLED", "Order Cancelled", "cancelled", {},
        publisher=FakePublisher(fail=True), push_client=FakePushClient(broken={"https://push.example/live"}),
    )

    assert len(created) == 1
    # a transient failure keeps the subscription
    assert db.query(PushSubscriptionModel).count() == 1


class _FakeTask:
    def __init__(self, delay):
        self.delay = delay


def test_notify_enqueues_the_task(monkeypatch):
    calls = []
    monkeypatch.setattr(notification_service, "deliver_notification_task", _FakeTask(lambda *args: calls.append(args)))
    recipient = uuid.uuid4()

    NotificationService().notify([recipient, None], "NEW_ORDER", "t", "m", {"orderId": recipient})

    assert calls == [([str(recipient)], "NEW_ORDER", "t", "m", {"orderId": str(recipient)})]


def test_notify_never_raises(monkeypatch):
    def broken(*args):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(notification_service, "deliver_notification_task", _FakeTask(broken))

    NotificationService().notify([uuid.uuid4()], "NEW_ORDER", "t", "m")


def test_inbox(db):
    me, other = uuid.uuid4(), uuid.uuid4()
    deliver_notification(
        db, [str(me), str(other)], "ORDER_STATUS", "Order Status Updated", "shipped", {},
        publisher=FakePublisher(), push_client=FakePushClient(),
    )
    deliver_notification(
        db, [str(me)], "REWARD_EARNED", "Referral Reward Earned", "20 coins", {"coins": 20},
        publisher=FakePublisher(), push_client=FakePushClient(),
    )
    inbox = InboxService(db)

    mine = inbox.list_notifications(me)
    assert len(mine) == 2

    with pytest.raises(PermissionError):
        inbox.mark_read(other, mine[0].id)
    with pytest.raises(NotFoundError):
        inbox.mark_read(me, uuid.uuid4())

    inbox.mark_read(me, mine[0].id)
    assert len(inbox.list_notifications(me, unread_only=True)) == 1

    assert inbox.mark_all_read(me) == 1
    assert inbox.list_notifications(me, unread_only=True) == []
    assert len(inbox.list_notifications(other, unread_only=True)) == 1


def test_subscription_upsert_by_endpoint(db):
    me = uuid.uuid4()
    inbox = InboxService(db)
    payload = {"endpoint": "https://push.example/abc", "keys": {"p256dh": "k1", "auth": "a1"}}

    first = inbox.register_subscription(me, PushSubscriptionIn(**payload))
    payload["keys"] = {"p256dh": "k2", "auth": "a2"}
    second = inbox.register_subscription(me, PushSubscriptionIn(**payload))

    assert first.id == second.id
    assert db.query(PushSubscriptionModel).one().p256dh == "k2"


class _Response:
    def __init__(self, status_code):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.mark.parametrize("status,expected", [(201, True), (404, False), (410, False)])
def test_push_client_status_handling(monkeypatch, status, expected):
    posted = []

    def fake_post(url, json, timeout):
        posted.append(url)
        return _Response(status)

    monkeypatch.setattr(requests, "post", fake_post)

    client = PushClient(base_url="http://gateway/")
    assert client.send({"endpoint": "https://push.example/abc"}, {"type": "NEW_ORDER"}) is expected
    assert posted == ["http://gateway/send"]


class FakeRedis:
    def __init__(self):
        self.store = {}

    def set(self, name, value, nx=False, ex=None):
        if nx and name in self.store:
            return None
        self.store[name] = value
        return True

    def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


def test_checkout_lock():
    locks = LockService(url="redis://localhost:6379/0")
    locks.redis = FakeRedis()
    buyer_id = uuid.uuid4()

    with locks.buyer_checkout(buyer_id) as token:
        assert locks.redis.store[f"buyer:{buyer_id}:checkout:lock"] == token
        with pytest.raises(ConcurrencyError):
            with locks.buyer_checkout(buyer_id):
                pass
        # a stale token never drops the current holder's lock
        assert locks.release_buyer_lock(buyer_id, "someone-else") is False

    assert locks.redis.store == {}


def test_opening_a_notification_marks_it_read(db):
    me, other = uuid.uuid4(), uuid.uuid4()
    created = deliver_notification(
        db, [str(me)], "ORDER_STATUS", "Order Status Updated", "Order #ORD-1 has been shipped", {},
        publisher=FakePublisher(), push_client=FakePushClient(),
    )
    inbox = InboxService(db)

    with pytest.raises(PermissionError):
        inbox.get_notification(other, created[0].id)
    assert db.get(NotificationModel, created[0].id).is_read is False

    opened = inbox.get_notification(me, created[0].id)

    assert opened.is_read is True
    assert inbox.list_notifications(me, unread_only=True) == []


def test_search_matches_title_or_message(db):
    me = uuid.uuid4()
    for type, title, message in [
        ("NEW_ORDER", "New Order Received", "You have received a new order #ORD-1"),
        ("REWARD_EARNED", "Referral Reward Earned", "You earned 20 coins from Bilal's purchase!"),
        ("ORDER_CANCELLED", "Order Cancelled", "Order #ORD-2 has been cancelled by Bilal"),
    ]:
        deliver_notification(
            db, [str(me)], type, title, message, {},
            publisher=FakePublisher(), push_client=FakePushClient(),
        )
    inbox = InboxService(db)

    assert {n.type for n in inbox.list_notifications(me, search="bilal")} == {"REWARD_EARNED", "ORDER_CANCELLED"}
    assert [n.type for n in inbox.list_notifications(me, search="reward")] == ["REWARD_EARNED"]
    assert inbox.list_notifications(me, search="refund") == []
