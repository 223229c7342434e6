from decimal import Decimal
from types import SimpleNamespace

import pytest

from pos_api.core.errors import StoreError
from pos_api.main import load_order_for_alert
from pos_api.schemas.orders import OrderCreateRequest
from pos_api.services.orders.store import OrderStore
from pos_api.services.orders.submission import OrderSubmissionService
from pos_api.services.realtime.alerts import PaidOrderAlerts, is_newly_paid
from pos_api.services.realtime.feed import ChangeEvent, OrderChangeFeed
from pos_api.services.realtime.notifier import RealtimeNotifier


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def paid_insert(order_id):
    return ChangeEvent("INSERT", "orders", new={"id": order_id, "payment_status": "paid"})


def stored_order(order_id):
    return SimpleNamespace(
        id=order_id,
        order_number=f"ORD-1-{order_id:03d}",
        customer_name="Abena",
        customer_phone="0201234567",
        delivery_address=None,
        items=[SimpleNamespace(item_name="Onigiri", quantity=2, unit_price=Decimal("18.90"))],
        subtotal=Decimal("37.80"),
        delivery_fee=Decimal("0"),
        total_amount=Decimal("37.80"),
        created_at=None,
    )


class BrokenItemsStore(OrderStore):
    def insert_order_item(self, order_id, data):
        raise StoreError("Failed to create order item")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def alerts(clock):
    return PaidOrderAlerts(stored_order, ttl_seconds=30, clock=clock)


@pytest.mark.parametrize("change,expected", [
    (ChangeEvent("INSERT", "orders", new={"id": 1, "payment_status": "paid"}), True),
    (ChangeEvent("INSERT", "orders", new={"id": 1, "payment_status": "pending"}), False),
    (ChangeEvent("UPDATE", "orders", new={"id": 1, "payment_status": "paid"}, old={"payment_status": "pending"}), True),
    (ChangeEvent("UPDATE", "orders", new={"id": 1, "payment_status": "paid"}, old={"payment_status": "paid"}), False),
    (ChangeEvent("DELETE", "orders", old={"id": 1, "payment_status": "paid"}), False),
])
def test_is_newly_paid(change, expected):
    assert is_newly_paid(change) is expected


class TestPaidOrderAlerts:
    def test_queues_order_with_items(self, alerts):
        notification = alerts.handle(paid_insert(1))

        assert notification.order_number == "ORD-1-001"
        assert notification.delivery_address == "Pickup"
        assert notification.items[0].name == "Onigiri"
        assert notification.total == Decimal("37.80")
        assert [n.id for n, _ in alerts.pending()] == [1]

    def test_same_order_queued_once(self, alerts):
        alerts.handle(paid_insert(1))
        assert alerts.handle(paid_insert(1)) is None
        assert len(alerts.pending()) == 1

    def test_unpaid_change_ignored(self, alerts):
        alerts.handle(ChangeEvent("UPDATE", "orders", new={"id": 1, "payment_status": "pending"}, old={}))
        assert alerts.pending() == []

    def test_missing_order_ignored(self, clock):
        alerts = PaidOrderAlerts(lambda order_id: None, ttl_seconds=30, clock=clock)
        assert alerts.handle(paid_insert(1)) is None
        assert alerts.pending() == []

    def test_alert_expires_after_ttl(self, alerts, clock):
        alerts.handle(paid_insert(1))

        clock.now = 29.0
        [(_, remaining)] = alerts.pending()
        assert remaining == pytest.approx(1.0)

        clock.now = 30.0
        assert alerts.expire() == [1]
        assert alerts.pending() == []

    def test_each_alert_has_its_own_countdown(self, alerts, clock):
        alerts.handle(paid_insert(1))
        clock.now = 10.0
        alerts.handle(paid_insert(2))

        clock.now = 30.0
        assert [n.id for n, _ in alerts.pending()] == [2]
        clock.now = 40.0
        assert alerts.pending() == []

    def test_accept_and_decline(self, alerts):
        alerts.handle(paid_insert(1))
        alerts.handle(paid_insert(2))

        assert alerts.accept(1) is True
        assert alerts.decline(2) is True
        assert alerts.accept(1) is False
        assert alerts.pending() == []

    def test_attached_to_notifier(self, alerts):
        feed = OrderChangeFeed()
        notifier = RealtimeNotifier(feed)
        notifier.start()
        try:
            alerts.attach(notifier)
            feed.publish(paid_insert(3))
            assert [n.id for n, _ in alerts.pending()] == [3]

            alerts.detach()
            feed.publish(paid_insert(4))
            assert alerts.pending() == []
        finally:
            notifier.stop()
            feed.uninstall()

    def test_deleted_order_withdraws_alert(self, alerts):
        alerts.handle(paid_insert(1))
        alerts.handle(paid_insert(2))

        alerts.handle(ChangeEvent("DELETE", "orders", old={"id": 1, "payment_status": "paid"}))
        assert [n.id for n, _ in alerts.pending()] == [2]

    def test_vanished_order_dropped_when_listed(self, clock):
        rows = {5: SimpleNamespace(**{**vars(stored_order(5)), "items": []})}
        alerts = PaidOrderAlerts(rows.get, ttl_seconds=30, clock=clock)
        alerts.handle(paid_insert(5))

        del rows[5]
        assert alerts.pending() == []


def test_cash_order_rolled_back_leaves_no_alert(db, make_order, clock):
    feed = OrderChangeFeed()
    notifier = RealtimeNotifier(feed)
    alerts = PaidOrderAlerts(load_order_for_alert, ttl_seconds=30, clock=clock)
    notifier.start()
    try:
        alerts.attach(notifier)
        service = OrderSubmissionService(BrokenItemsStore(db))
        with pytest.raises(StoreError):
            service.submit(OrderCreateRequest(**make_order(customer_phone=None, payment_method="cash")))
        assert alerts.pending() == []
    finally:
        alerts.detach()
        notifier.stop()
        feed.uninstall()
