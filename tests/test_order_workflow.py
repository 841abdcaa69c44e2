"""Order lifecycle after checkout: status flow, tracking, kitchen queue, payments, dashboard."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import OrderStatus, Payment
from app.services.order_workflow import can_transition


def _advance(client: TestClient, order_id: str, *statuses: str) -> None:
    for status in statuses:
        response = client.patch(f"/api/orders/{order_id}/status", json={"status": status})
        assert response.status_code == 200, response.text


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED, True),
        (OrderStatus.READY, OrderStatus.SERVED, True),
        (OrderStatus.SERVED, OrderStatus.COMPLETED, True),
        (OrderStatus.PENDING, OrderStatus.READY, False),
        (OrderStatus.PREPARING, OrderStatus.CONFIRMED, False),
        (OrderStatus.PREPARING, OrderStatus.CANCELLED, True),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED, False),
        (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
    ],
)
def test_status_transitions(current, target, allowed) -> None:
    assert can_transition(current, target) is allowed


def test_menu_lists_only_available_items(client: TestClient, db_session: Session) -> None:
    response = client.get("/api/menu")

    assert response.status_code == 200
    names = [item["name"] for item in response.json()]
    assert "Butter Naan" in names
    assert "Mango Lassi" not in names
    naan = next(item for item in response.json() if item["name"] == "Butter Naan")
    assert naan["price"] == 60
    assert naan["isAvailable"] is True


def test_get_order_returns_items(client: TestClient, make_order) -> None:
    order = make_order()

    response = client.get(f"/api/orders/{order['id']}")

    assert response.status_code == 200
    body = response.json()
    assert body["orderNumber"] == order["orderNumber"]
    assert body["status"] == "pending"
    assert body["paymentStatus"] == "pending"
    assert body["total"] == 126
    assert body["items"][0]["itemName"] == "Butter Naan"
    assert body["items"][0]["quantity"] == 2


def test_get_unknown_order_is_404(client: TestClient, db_session: Session) -> None:
    response = client.get(f"/api/orders/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"error": "Order not found"}


def test_kitchen_moves_order_through_every_step(client: TestClient, make_order) -> None:
    order = make_order()

    _advance(client, order["id"], "confirmed", "preparing", "ready", "served", "completed")

    body = client.get(f"/api/orders/{order['id']}").json()
    assert body["status"] == "completed"


def test_skipping_a_step_is_409(client: TestClient, make_order) -> None:
    order = make_order()

    response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "ready"})

    assert response.status_code == 409
    assert response.json() == {"error": "Cannot change order from pending to ready"}


def test_completed_order_cannot_be_cancelled(client: TestClient, make_order) -> None:
    order = make_order()
    _advance(client, order["id"], "confirmed", "preparing", "ready", "served", "completed")

    response = client.patch(f"/api/orders/{order['id']}/status", json={"status": "cancelled"})

    assert response.status_code == 409


def test_kitchen_queue_is_oldest_first_and_active_only(client: TestClient, make_order) -> None:
    first = make_order()
    second = make_order(phone="+919812345678")
    cancelled = make_order(phone="+919811111111")
    _advance(client, cancelled["id"], "cancelled")
    _advance(client, second["id"], "confirmed", "preparing")

    response = client.get("/api/kitchen/orders")

    assert response.status_code == 200
    ids = [order["id"] for order in response.json()]
    assert ids == [first["id"], second["id"]]


def test_tracking_by_order_number(client: TestClient, make_order) -> None:
    order = make_order()

    response = client.get("/api/orders/track", params={"orderNumber": order["orderNumber"].lower()})

    assert response.status_code == 200
    assert response.json()["id"] == order["id"]


def test_tracking_by_phone_returns_latest(client: TestClient, make_order) -> None:
    make_order()
    latest = make_order()

    response = client.get("/api/orders/track", params={"phone": "+919876543210"})

    assert response.status_code == 200
    assert response.json()["id"] == latest["id"]


def test_tracking_requires_a_lookup_key(client: TestClient, db_session: Session) -> None:
    response = client.get("/api/orders/track")

    assert response.status_code == 400
    assert response.json()["details"] == ["Please enter order number or phone number"]


def test_tracking_unknown_order_is_404(client: TestClient, make_order) -> None:
    make_order()

    response = client.get(
        "/api/orders/track",
        params={"orderNumber": "ORD-20000101-000000", "phone": "+919876543210"},
    )

    assert response.status_code == 404


def test_payment_is_recorded_for_order_total(
    client: TestClient, db_session: Session, make_order
) -> None:
    order = make_order()

    response = client.post(f"/api/orders/{order['id']}/payments", json={"paymentMethod": "upi"})

    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 126
    assert body["paymentMethod"] == "upi"
    assert body["status"] == "completed"
    assert body["transactionId"].startswith("TXN-")

    assert client.get(f"/api/orders/{order['id']}").json()["paymentStatus"] == "completed"
    payment = db_session.scalars(select(Payment)).one()
    assert str(payment.order_id) == order["id"]


def test_second_payment_is_409(client: TestClient, make_order) -> None:
    order = make_order()
    client.post(f"/api/orders/{order['id']}/payments", json={"paymentMethod": "cash"})

    response = client.post(f"/api/orders/{order['id']}/payments", json={"paymentMethod": "card"})

    assert response.status_code == 409
    assert response.json() == {"error": "Order is already paid"}


def test_cancelled_order_cannot_be_paid(client: TestClient, make_order) -> None:
    order = make_order()
    _advance(client, order["id"], "cancelled")

    response = client.post(f"/api/orders/{order['id']}/payments", json={"paymentMethod": "cash"})

    assert response.status_code == 409


def test_unknown_payment_method_is_400(client: TestClient, make_order) -> None:
    order = make_order()

    response = client.post(f"/api/orders/{order['id']}/payments", json={"paymentMethod": "cheque"})

    assert response.status_code == 400


def test_dashboard_counts_orders_customers_and_paid_revenue(client: TestClient, make_order) -> None:
    paid = make_order()
    make_order(phone="+919812345678")
    client.post(f"/api/orders/{paid['id']}/payments", json={"paymentMethod": "cash"})
    _advance(client, paid["id"], "confirmed")

    response = client.get("/api/dashboard-data")

    assert response.status_code == 200
    data = response.json()
    assert data["total_orders"] == 2
    assert data["pending_orders"] == 1
    assert data["total_customers"] == 2
    assert data["today_revenue"] == 126
    assert len(data["recent_orders"]) == 2
    assert data["recent_orders"][0]["orderNumber"]


def test_health_reports_components(client: TestClient, db_session: Session) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "healthy"
    assert body["rate_limiter"] == "healthy"
    assert body["notification_service"] == "healthy"
    assert body["status"] == "operational"


def test_malformed_order_id_is_reported_generically(client: TestClient, db_session: Session) -> None:
    response = client.get("/api/orders/not-a-uuid")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input data", "details": ["Invalid order id"]}
