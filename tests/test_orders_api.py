from pos_api.core.errors import StoreError
from pos_api.services.orders.store import OrderStore


def create(client, payload):
    res = client.post("/api/v1/orders", json=payload)
    assert res.status_code == 201, res.text
    return res.json()["order"]


class TestCreateOrder:
    def test_created(self, client, make_order):
        res = client.post("/api/v1/orders", json=make_order())
        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        assert body["order"]["order_number"].startswith("ORD-")

    def test_validation_error_shape(self, client, make_order):
        res = client.post("/api/v1/orders", json=make_order(items=[]))
        assert res.status_code == 400
        assert res.json() == {"error": "Order must contain at least one item"}

    def test_delivery_needs_address(self, client, make_order):
        res = client.post("/api/v1/orders", json=make_order(order_type="delivery"))
        assert res.status_code == 400
        assert res.json()["error"] == "Delivery address is required for delivery orders"

    def test_total_must_match_items(self, client, make_order):
        res = client.post("/api/v1/orders", json=make_order(subtotal="1.00", total="1.00"))
        assert res.status_code == 400
        assert res.json() == {
            "error": "Order subtotal does not match its items",
            "details": {"subtotal": "1.00", "expected": "47.30"},
        }
        assert client.get("/api/v1/orders").json() == []

    def test_consistent_totals_accepted(self, client, make_order):
        res = client.post("/api/v1/orders", json=make_order(subtotal="47.30", delivery_fee="0", total="47.30"))
        assert res.status_code == 201


class TestReadOrders:
    def test_detail(self, client, make_order):
        order = create(client, make_order())
        res = client.get(f"/api/v1/orders/{order['id']}")
        assert res.status_code == 200
        body = res.json()
        assert body["order_number"] == order["order_number"]
        assert body["subtotal"] == 47.3
        assert [i["item_name"] for i in body["items"]] == ["Onigiri", "Tom Yum Soup"]
        assert body["timeline"][0]["event_description"] == "Order created from POS"

    def test_missing(self, client):
        res = client.get("/api/v1/orders/999")
        assert res.status_code == 404
        assert res.json() == {"error": "Order not found"}

    def test_list_filtered_by_status(self, client, make_order):
        first = create(client, make_order())
        create(client, make_order())
        client.patch(f"/api/v1/orders/{first['id']}/status", json={"status": "preparing"})

        res = client.get("/api/v1/orders", params={"status": "preparing"})
        assert [o["id"] for o in res.json()] == [first["id"]]

    def test_list_rejects_unknown_status(self, client):
        res = client.get("/api/v1/orders", params={"status": "lost"})
        assert res.status_code == 400


class TestStatus:
    def test_advance(self, client, make_order):
        order = create(client, make_order())
        res = client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "preparing"})
        assert res.status_code == 200
        assert res.json()["status"] == "preparing"
        assert res.json()["next_status"] == "ready"

        detail = client.get(f"/api/v1/orders/{order['id']}").json()
        assert detail["status"] == "preparing"
        assert detail["timeline"][-1]["event_description"] == "Order marked as preparing"

    def test_confirmed_stored_as_paid(self, client, make_order):
        order = create(client, make_order())
        client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "confirmed"})
        assert client.get(f"/api/v1/orders/{order['id']}").json()["status"] == "paid"

    def test_backward_transition_conflict(self, client, make_order):
        order = create(client, make_order())
        client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "ready"})
        res = client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": "preparing"})
        assert res.status_code == 409
        assert client.get(f"/api/v1/orders/{order['id']}").json()["status"] == "ready"

    def test_unknown_order(self, client):
        res = client.patch("/api/v1/orders/999/status", json={"status": "ready"})
        assert res.status_code == 404


class TestKitchenBoard:
    def test_board_and_counts(self, client, make_order):
        a = create(client, make_order(customer_name="Kwame"))
        b = create(client, make_order(customer_name="Esi"))
        client.patch(f"/api/v1/orders/{b['id']}/status", json={"status": "preparing"})

        body = client.get("/api/v1/kitchen/orders").json()
        assert body["counts"] == {"all": 2, "pending": 1, "preparing": 1, "ready": 0, "completed": 0}
        assert [o["id"] for o in body["orders"]] == [b["id"], a["id"]]

        body = client.get("/api/v1/kitchen/orders", params={"search": "kwame"}).json()
        assert [o["id"] for o in body["orders"]] == [a["id"]]
        assert body["orders"][0]["order_type"] == "dine-in"
        assert body["orders"][0]["next_status"] == "preparing"


class TestPaidOrderAlerts:
    def test_cash_order_raises_alert(self, client, make_order):
        order = create(client, make_order(payment_method="cash"))
        items = client.get("/api/v1/notifications/orders").json()["items"]
        assert [i["order_number"] for i in items] == [order["order_number"]]
        assert [i["name"] for i in items[0]["items"]] == ["Onigiri", "Tom Yum Soup"]
        assert 0 < items[0]["expires_in"] <= 30

    def test_payment_status_update_raises_alert_once(self, client, make_order):
        order = create(client, make_order(payment_method="mobile_money"))
        assert client.get("/api/v1/notifications/orders").json()["items"] == []

        res = client.patch(f"/api/v1/orders/{order['id']}/payment-status", json={"payment_status": "paid"})
        assert res.status_code == 200
        assert res.json()["payment_status"] == "paid"
        client.patch(f"/api/v1/orders/{order['id']}/payment-status", json={"payment_status": "paid"})

        items = client.get("/api/v1/notifications/orders").json()["items"]
        assert [i["id"] for i in items] == [order["id"]]

    def test_rolled_back_cash_order_leaves_no_alert(self, client, make_order, monkeypatch):
        def broken(self, order_id, data):
            raise StoreError("Failed to create order item")

        monkeypatch.setattr(OrderStore, "insert_order_item", broken)
        res = client.post("/api/v1/orders", json=make_order(payment_method="cash"))
        assert res.status_code == 500
        assert res.json()["error"] == "Failed to create order items"
        assert client.get("/api/v1/notifications/orders").json()["items"] == []

    def test_accept_removes_alert(self, client, make_order):
        order = create(client, make_order(payment_method="cash"))
        res = client.post(f"/api/v1/notifications/orders/{order['id']}/accept")
        assert res.status_code == 200
        assert client.get("/api/v1/notifications/orders").json()["items"] == []
        assert client.post(f"/api/v1/notifications/orders/{order['id']}/decline").status_code == 404

    def test_invalid_payment_status(self, client, make_order):
        order = create(client, make_order())
        res = client.patch(f"/api/v1/orders/{order['id']}/payment-status", json={"payment_status": "maybe"})
        assert res.status_code == 422
