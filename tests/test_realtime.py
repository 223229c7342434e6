from decimal import Decimal

import pytest

from pos_api import models
from pos_api.services.orders.store import OrderStore
from pos_api.services.realtime.feed import CLOSED, SUBSCRIBED, ChangeEvent, OrderChangeFeed
from pos_api.services.realtime.notifier import RealtimeNotifier


@pytest.fixture
def feed():
    feed = OrderChangeFeed()
    yield feed
    feed.uninstall()


@pytest.fixture
def events(feed):
    received = []
    feed.channel("test-orders", received.append)
    return received


def new_order(institution, branch, number="ORD-1-200", **extra):
    data = {
        "order_number": number,
        "institution_id": institution.id,
        "branch_id": branch.id,
        "customer_name": "Yaw",
        "delivery_type": "pickup",
        "subtotal": Decimal("9.50"),
        "total_amount": Decimal("9.50"),
    }
    data.update(extra)
    return data


class TestOrderChangeFeed:
    def test_insert_published_after_commit(self, db, institution, branch, events):
        OrderStore(db).insert_order(new_order(institution, branch))

        assert len(events) == 1
        assert events[0].event_type == "INSERT"
        assert events[0].table == "orders"
        assert events[0].new["order_number"] == "ORD-1-200"
        assert events[0].old is None

    def test_update_carries_old_and_new_row(self, db, institution, branch, events):
        store = OrderStore(db)
        order = store.insert_order(new_order(institution, branch))
        store.update_order_status(order.id, "preparing")

        update = events[-1]
        assert update.event_type == "UPDATE"
        assert update.old["status"] == "pending"
        assert update.new["status"] == "preparing"

    def test_rollback_drops_pending_changes(self, db, institution, branch, events):
        db.add(models.Order(**new_order(institution, branch)))
        db.flush()
        db.rollback()
        assert events == []

    def test_child_rows_do_not_publish(self, db, institution, branch, events):
        store = OrderStore(db)
        order = store.insert_order(new_order(institution, branch))
        store.insert_timeline(order.id, "pending", "Order created from POS")
        assert [e.event_type for e in events] == ["INSERT"]

    def test_delete_published(self, db, institution, branch, events):
        store = OrderStore(db)
        order = store.insert_order(new_order(institution, branch))
        store.delete_order(order.id)
        assert events[-1].event_type == "DELETE"
        assert events[-1].old["id"] == order.id

    def test_channel_status(self, feed):
        statuses = []
        channel = feed.channel("status", lambda e: None, on_status=statuses.append)
        channel.close()
        assert statuses == [SUBSCRIBED, CLOSED]
        assert feed.channels == []


def event(n=1):
    return ChangeEvent("INSERT", "orders", new={"id": n, "payment_status": "pending"})


class TestRealtimeNotifier:
    def test_start_opens_one_channel(self, feed):
        notifier = RealtimeNotifier(feed)
        notifier.start()
        notifier.start()
        assert len(feed.channels) == 1
        assert notifier.is_connected

        notifier.stop()
        assert feed.channels == []
        assert not notifier.is_connected

    def test_listeners_called_in_registration_order(self, feed):
        notifier = RealtimeNotifier(feed)
        notifier.start()
        calls = []
        notifier.subscribe_to_orders(lambda e: calls.append("first"))
        notifier.subscribe_to_orders(lambda e: calls.append("second"))

        feed.publish(event())
        assert calls == ["first", "second"]

    def test_failing_listener_does_not_stop_others(self, feed):
        notifier = RealtimeNotifier(feed)
        notifier.start()
        seen = []

        def broken(e):
            raise RuntimeError("kitchen screen gone")

        notifier.subscribe_to_orders(broken)
        notifier.subscribe_to_orders(seen.append)
        feed.publish(event(5))

        assert [e.new["id"] for e in seen] == [5]

    def test_unsubscribe_keeps_channel_open(self, feed):
        notifier = RealtimeNotifier(feed)
        notifier.start()
        seen = []
        unsubscribe = notifier.subscribe_to_orders(seen.append)

        feed.publish(event(1))
        unsubscribe()
        feed.publish(event(2))

        assert [e.new["id"] for e in seen] == [1]
        assert len(feed.channels) == 1
        assert notifier.listener_count == 0

    def test_same_callback_registered_once(self, feed):
        notifier = RealtimeNotifier(feed)
        seen = []
        notifier.subscribe_to_orders(seen.append)
        notifier.subscribe_to_orders(seen.append)
        assert notifier.listener_count == 1
