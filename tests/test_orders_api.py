from decimal import Decimal

from orderdesk.api.v1.endpoints.orders import get_notifier
from orderdesk.config.settings import Settings
from orderdesk.main import app
from orderdesk.models.order import Order
from orderdesk.services.notification_service import OrderNotifier
from orderdesk.utils.email_utils import EmailConfig, EmailService

BASE = "/api/v1/orders"


def create(client, headers, items, **extra):
    payload = {"customer_id": "C001", "items": items, **extra}
    return client.post(f"{BASE}/", json=payload, headers=headers)


class OutboxEmailService(EmailService):
    """Keeps messages instead of talking to SMTP."""

    def __init__(self):
        super().__init__(EmailConfig(smtp_server="localhost", smtp_port=25, username=None,
                                     password=None, sender="orders@example.com"))
        self.sent = []

    async def send_email_async(self, message):
        self.sent.append(message)
        return True


# ---------- Auth ----------
def test_requests_need_a_token(client):
    response = client.get(f"{BASE}/")
    assert response.status_code == 401
    body = response.json()
    assert body["error"] is True
    assert body["error_code"] == "UNAUTHORIZED"


def test_garbage_token_is_rejected(client):
    response = client.get(f"{BASE}/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_role_checks_use_error_envelope(client, auth_headers, make_order):
    order = make_order([{"product_id": "P1", "quantity": 1}])

    response = client.delete(f"{BASE}/{order.id}", headers=auth_headers("driver"))
    assert response.status_code == 403
    assert response.json()["error_code"] == "FORBIDDEN"

    response = client.post(f"{BASE}/{order.id}/finalize", headers=auth_headers("sales"))
    assert response.status_code == 403


# ---------- Create / read ----------
def test_create_order_notifies_creator(client, auth_headers, notifier):
    response = create(client, auth_headers("manager"), [
        {"product_id": "P1", "quantity": 2},
        {"product_id": "P3", "quantity": 1},
    ])

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == "ORD001"
    assert body["status"] == "Pending"
    assert Decimal(body["total"]) == Decimal("437.50")
    assert [item["product_id"] for item in body["items"]] == ["P1", "P3"]
    assert body["assigned_user_name"] == "Manny Manager"

    assert notifier.messages == [
        {"to": "manager@example.com", "order_id": "ORD001", "customer_name": "Corner Grocers"}
    ]
    assert notifier.delivered == notifier.messages


def test_create_errors(client, auth_headers):
    headers = auth_headers("admin")

    response = create(client, headers, [{"product_id": "P2", "quantity": 3}])
    assert response.status_code == 422
    assert response.json()["error_code"] == "EMPTY_ORDER"

    response = client.post(f"{BASE}/", json={"items": [{"product_id": "P1", "quantity": 1}]}, headers=headers)
    assert response.status_code == 422
    assert response.json()["field"] == "customer_id"


def test_list_and_get(client, auth_headers, make_order):
    make_order([{"product_id": "P1", "quantity": 1}])
    make_order([{"product_id": "P3", "quantity": 1}])

    response = client.get(f"{BASE}/", headers=auth_headers("sales"))
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == "ORD001"
    assert body["permissions"]["delete"] is False

    response = client.get(f"{BASE}/", params={"search": "ord002"}, headers=auth_headers("admin"))
    assert [order["id"] for order in response.json()["items"]] == ["ORD002"]

    response = client.get(f"{BASE}/", params={"status": "Delivered"}, headers=auth_headers("admin"))
    assert response.json()["total"] == 0

    response = client.get(f"{BASE}/ORD002", headers=auth_headers("driver"))
    assert response.status_code == 200
    assert response.json()["outstanding_balance"] is None

    response = client.get(f"{BASE}/ORD999", headers=auth_headers("admin"))
    assert response.status_code == 404
    assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"


def test_by_supplier_and_products(client, auth_headers, make_order):
    make_order([{"product_id": "P1", "quantity": 1}])

    groups = client.get(f"{BASE}/by-supplier", headers=auth_headers("admin")).json()
    assert [group["supplier"] for group in groups] == ["Acme Foods"]
    assert groups[0]["orders"][0]["id"] == "ORD001"

    products = client.get(f"{BASE}/products", headers=auth_headers("driver")).json()
    assert {product["id"]: product["effective_stock"] for product in products} == {"P1": 4, "P2": 0, "P3": 2}


def test_preview(client, auth_headers):
    response = client.post(f"{BASE}/preview", json={
        "customer_id": "C001",
        "items": [{"product_id": "P1", "quantity": 5, "discount": 10}, {"product_id": "P2", "quantity": 1}],
    }, headers=auth_headers("sales"))

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["total"]) == Decimal("450.00")
    assert body["in_stock_count"] == 5
    assert body["held_count"] == 1


# ---------- Edit ----------
def test_update_hold_and_delete(client, auth_headers, make_order):
    order = make_order([{"product_id": "P1", "quantity": 2}])
    headers = auth_headers("admin")

    response = client.put(f"{BASE}/{order.id}", json={
        "customer_id": "C001",
        "items": [{"product_id": "P1", "quantity": 3}, {"product_id": "P3", "quantity": 1}],
        "payment_method": "cash",
    }, headers=headers)
    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("537.50")

    response = client.post(f"{BASE}/{order.id}/hold/P3", headers=headers)
    assert [item["product_id"] for item in response.json()["backordered_items"]] == ["P3"]
    assert Decimal(response.json()["total"]) == Decimal("300.00")

    response = client.post(f"{BASE}/{order.id}/unhold/P3", headers=headers)
    assert response.json()["backordered_items"] == []

    response = client.delete(f"{BASE}/{order.id}", headers=headers)
    assert response.status_code == 204
    assert client.get(f"{BASE}/{order.id}", headers=headers).status_code == 404


# ---------- Balances ----------
def test_balances_require_confirmation_above_total(client, auth_headers, make_order):
    order = make_order([{"product_id": "P1", "quantity": 5}])
    headers = auth_headers("admin")

    response = client.put(f"{BASE}/{order.id}/balances", json={"amount_paid": 200}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["credit_balance"]) == Decimal("300.00")
    assert Decimal(body["outstanding_balance"]) == Decimal("300.00")

    response = client.put(f"{BASE}/{order.id}/balances", json={"cheque_balance": 900}, headers=headers)
    assert response.status_code == 409
    assert response.json()["error_code"] == "BALANCE_CONFIRMATION_REQUIRED"

    response = client.put(f"{BASE}/{order.id}/balances", json={"cheque_balance": 900, "confirm": True},
                          headers=headers)
    assert response.status_code == 200
    assert Decimal(response.json()["cheque_balance"]) == Decimal("900.00")


# ---------- Delivery ----------
def test_finalize_and_insufficient_stock(client, auth_headers, make_order):
    order = make_order([{"product_id": "P1", "quantity": 5}])

    response = client.post(f"{BASE}/{order.id}/finalize", headers=auth_headers("driver"))
    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "INSUFFICIENT_STOCK"
    assert body["details"]["available"] == 4

    response = client.post(f"{BASE}/{order.id}/finalize", headers=auth_headers("manager"))
    assert response.status_code == 200
    body = response.json()
    assert body["order"]["status"] == "Delivered"
    assert body["sold"] == 5
    assert body["already_delivered"] is False


def test_invoice_and_bill(client, auth_headers, make_order, db_session, seed):
    order = make_order([{"product_id": "P1", "quantity": 2}])
    headers = auth_headers("driver")

    response = client.get(f"{BASE}/{order.id}/invoice", headers=headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Invoice #: ORD001" in response.text
    assert "Status: Pending" in response.text

    response = client.post(f"{BASE}/{order.id}/bill", headers=headers)
    assert response.status_code == 200
    assert "Status: Delivered" in response.text

    rice = seed.products["P1"]
    db_session.refresh(rice)
    assert rice.stock == 8

    assert client.get(f"{BASE}/{order.id}/invoice", headers=auth_headers("sales")).status_code == 403


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "ok"


def test_bad_creator_address_does_not_fail_the_order(client, auth_headers, db_session, seed):
    email_service = OutboxEmailService()
    app.dependency_overrides[get_notifier] = lambda: OrderNotifier(
        Settings(NOTIFICATIONS_ENABLED=True), email_service
    )
    manager = seed.users["manager"]
    manager.email = "not-an-email"
    db_session.commit()

    response = create(client, auth_headers("manager"), [{"product_id": "P1", "quantity": 1}])

    assert response.status_code == 201
    assert response.json()["id"] == "ORD001"
    assert [order.id for order in db_session.query(Order).all()] == ["ORD001"]
    assert email_service.sent == []


def test_request_body_errors_use_error_envelope(client, auth_headers, make_order):
    order = make_order([{"product_id": "P1", "quantity": 1}])

    response = client.put(f"{BASE}/{order.id}/balances", json={"cheque_balance": -5},
                          headers=auth_headers("admin"))

    assert response.status_code == 422
    body = response.json()
    assert body["error"] is True
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["field"] == "cheque_balance"
    assert body["errors"][0]["field"] == "cheque_balance"
    assert body["errors"][0]["code"] == "greater_than_equal"
