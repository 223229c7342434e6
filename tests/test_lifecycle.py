from decimal import Decimal
from types import SimpleNamespace

import pytest

from pos_api.core.errors import InvalidTransition, OrderValidationError, StoreError, UnknownStatus
from pos_api.services.orders.lifecycle import (
    StatusChange,
    StatusLifecycleManager,
    next_status,
    to_storage_status,
    to_ui_status,
    validate_transition,
)
from pos_api.services.orders.store import OrderStore


class RecordingStore:
    def __init__(self, fail_update=False, fail_timeline=False):
        self.fail_update = fail_update
        self.fail_timeline = fail_timeline
        self.updates = []
        self.timeline = []

    def update_order_status(self, order_id, status):
        if self.fail_update:
            raise StoreError("Failed to update order status")
        self.updates.append((order_id, status))

    def insert_timeline(self, order_id, event_type, description):
        if self.fail_timeline:
            raise StoreError("Failed to create timeline entry")
        self.timeline.append((order_id, event_type, description))


class TestStatusMapping:
    def test_confirmed_is_stored_as_paid(self):
        assert to_storage_status("confirmed") == "paid"
        assert to_ui_status("paid") == "confirmed"

    def test_completed_is_stored_as_delivered(self):
        assert to_storage_status("completed") == "delivered"
        assert to_ui_status("delivered") == "completed"

    @pytest.mark.parametrize("status", ["pending", "confirmed", "preparing", "ready", "completed", "cancelled"])
    def test_mapping_is_bidirectional(self, status):
        assert to_ui_status(to_storage_status(status)) == status

    def test_unknown_stored_status(self):
        with pytest.raises(UnknownStatus):
            to_ui_status("refunded")

    def test_next_status(self):
        assert next_status("pending") == "preparing"
        assert next_status("confirmed") == "preparing"
        assert next_status("preparing") == "ready"
        assert next_status("ready") == "completed"
        assert next_status("completed") is None
        assert next_status("cancelled") is None


class TestTransitions:
    def test_forward_allowed(self):
        validate_transition("pending", "preparing")
        validate_transition("confirmed", "completed")

    def test_backward_rejected(self):
        with pytest.raises(InvalidTransition):
            validate_transition("ready", "preparing")

    def test_same_status_rejected(self):
        with pytest.raises(InvalidTransition):
            validate_transition("preparing", "preparing")

    def test_cancel_from_any_open_status(self):
        for status in ("pending", "confirmed", "preparing", "ready"):
            validate_transition(status, "cancelled")

    def test_terminal_statuses_are_final(self):
        with pytest.raises(InvalidTransition):
            validate_transition("completed", "cancelled")
        with pytest.raises(InvalidTransition):
            validate_transition("cancelled", "preparing")

    def test_unknown_target(self):
        with pytest.raises(OrderValidationError):
            validate_transition("pending", "shipped")


def test_status_change_revert_restores_previous():
    order = SimpleNamespace(id=1, status="pending")
    change = StatusChange(order, "preparing")
    change.apply()
    assert order.status == "preparing"
    change.revert()
    assert order.status == "pending"


class TestAdvance:
    def test_persists_storage_status_and_timeline(self):
        store = RecordingStore()
        order = SimpleNamespace(id=7, status="pending")

        StatusLifecycleManager(store).advance(order, "confirmed")

        assert order.status == "confirmed"
        assert store.updates == [(7, "paid")]
        assert store.timeline == [(7, "paid", "Order marked as confirmed")]

    def test_persistence_failure_restores_prior_status(self):
        store = RecordingStore(fail_update=True)
        order = SimpleNamespace(id=7, status="preparing")

        with pytest.raises(StoreError):
            StatusLifecycleManager(store).advance(order, "ready")

        assert order.status == "preparing"
        assert store.timeline == []

    def test_timeline_failure_does_not_fail_transition(self):
        store = RecordingStore(fail_timeline=True)
        order = SimpleNamespace(id=7, status="ready")

        StatusLifecycleManager(store).advance(order, "completed")

        assert order.status == "completed"
        assert store.updates == [(7, "delivered")]

    def test_invalid_transition_touches_nothing(self):
        store = RecordingStore()
        order = SimpleNamespace(id=7, status="ready")

        with pytest.raises(InvalidTransition):
            StatusLifecycleManager(store).advance(order, "pending")

        assert order.status == "ready"
        assert store.updates == []

    def test_against_order_store(self, db, institution, branch):
        store = OrderStore(db)
        row = store.insert_order({
            "order_number": "ORD-1-100",
            "institution_id": institution.id,
            "branch_id": branch.id,
            "customer_name": "Kojo",
            "delivery_type": "pickup",
            "subtotal": Decimal("9.50"),
            "total_amount": Decimal("9.50"),
        })
        order = SimpleNamespace(id=row.id, status="pending")

        StatusLifecycleManager(store).advance(order, "preparing")

        saved = store.get_order(row.id)
        assert saved.status == "preparing"
        assert [(t.event_type, t.event_description) for t in saved.timeline] == [
            ("preparing", "Order marked as preparing"),
        ]
