import time

from pos_api.main import app


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not met in time"
        time.sleep(0.01)


def test_order_changes_streamed(client, make_order):
    notifier = app.state.realtime
    baseline = notifier.listener_count
    with client.websocket_connect("/api/v1/realtime/orders") as ws:
        wait_for(lambda: notifier.listener_count == baseline + 1)
        res = client.post("/api/v1/orders", json=make_order())
        message = ws.receive_json()

    assert message["eventType"] == "INSERT"
    assert message["table"] == "orders"
    assert message["new"]["order_number"] == res.json()["order"]["order_number"]


def test_idle_disconnect_unsubscribes(client):
    notifier = app.state.realtime
    baseline = notifier.listener_count
    with client.websocket_connect("/api/v1/realtime/orders"):
        wait_for(lambda: notifier.listener_count == baseline + 1)

    # no order events in between; the closed socket alone releases the listener
    wait_for(lambda: notifier.listener_count == baseline)
