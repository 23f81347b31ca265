import inspect
from uuid import uuid4

import pytest

from foodcourt.integrations.errors import IntegrationBadGatewayError, IntegrationTimeoutError
from foodcourt.integrations.xendit_client import Invoice, get_xendit_client
from foodcourt.main import app
from foodcourt.models.payment import OrderPayment
from foodcourt.routers.webhooks import xendit_webhook_endpoint

CALLBACK_HEADERS = {"x-callback-token": "test-callback-token"}


class FakeXenditClient:
    def __init__(self) -> None:
        self.created = []
        self.expired: list[str] = []
        self.invoice_status = "PENDING"
        self.create_error: Exception | None = None

    def create_invoice(self, request) -> Invoice:
        if self.create_error is not None:
            raise self.create_error
        self.created.append(request)
        invoice_id = f"inv-{len(self.created)}"
        return Invoice(
            id=invoice_id,
            status="PENDING",
            invoice_url=f"https://checkout.xendit.co/web/{invoice_id}",
            external_id=request.external_id,
            amount=request.amount,
        )

    def get_invoice(self, invoice_id: str) -> Invoice:
        return Invoice(id=invoice_id, status=self.invoice_status)

    def expire_invoice(self, invoice_id: str) -> Invoice:
        self.expired.append(invoice_id)
        return Invoice(id=invoice_id, status="EXPIRED")


@pytest.fixture
def xendit(client):
    fake = FakeXenditClient()
    app.dependency_overrides[get_xendit_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_xendit_client, None)


@pytest.fixture
def placed_order(client, buyer_session, make_merchant, make_menu):
    merchant = make_merchant()
    menu = make_menu(merchant, "Nasi Padang", price=28000)
    response = client.post(
        "/api/orders",
        json={
            "sessionId": str(buyer_session.id),
            "merchantId": str(merchant.id),
            "customerName": "Rina",
            "customerPhone": "081211112222",
            "items": [{"menuId": str(menu.id), "quantity": 2}],
        },
    )
    assert response.status_code == 201
    return response.json()["data"]


def _webhook(client, invoice_id, gateway_status, headers=CALLBACK_HEADERS, **extra):
    body = {"id": invoice_id, "external_id": "ORDER-x", "status": gateway_status, **extra}
    return client.post("/api/webhooks/xendit", json=body, headers=headers)


def test_batch_payment_records(client, placed_order):
    response = client.post(
        "/api/payments/create",
        json={"orderIds": [placed_order["id"]], "orderId": placed_order["id"]},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Created 1 payment(s)"
    payment = body["data"]["payments"][0]
    assert payment["orderId"] == placed_order["id"]
    assert payment["amount"] == 56000
    assert payment["status"] == "unpaid"
    assert body["data"]["totalAmount"] == 56000

    fetched = client.get(f"/api/payments/{payment['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["id"] == payment["id"]


def test_batch_payment_with_unknown_order_creates_nothing(client, db_session, placed_order):
    missing = str(uuid4())
    response = client.post(
        "/api/payments/create", json={"orderIds": [placed_order["id"], missing]}
    )
    assert response.status_code == 404
    assert response.json()["error"]["missingOrderIds"] == [missing]
    assert db_session.query(OrderPayment).count() == 0


def test_batch_payment_requires_order_ids(client):
    response = client.post("/api/payments/create", json={"orderIds": []})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_invoice_is_created_then_reused(client, xendit, placed_order):
    url = f"/api/orders/{placed_order['id']}/payment"

    first = client.post(url)
    assert first.status_code == 200
    data = first.json()["data"]
    assert data["reused"] is False
    assert data["paymentUrl"] == "https://checkout.xendit.co/web/inv-1"
    assert data["payment"]["xenditInvoiceId"] == "inv-1"
    assert data["payment"]["expiresAt"] is not None

    request = xendit.created[0]
    assert request.amount == 56000
    assert request.currency == "IDR"
    assert request.external_id.startswith(f"ORDER-{placed_order['id']}-")
    assert request.description == f"Payment for Order #{placed_order['id'][-8:]}"
    assert [(item.name, item.quantity, item.price) for item in request.items] == [
        ("Nasi Padang", 2, 28000)
    ]

    second = client.post(url)
    assert second.status_code == 200
    assert second.json()["data"]["reused"] is True
    assert second.json()["data"]["payment"]["id"] == data["payment"]["id"]
    assert len(xendit.created) == 1


def test_invoice_upgrades_batch_placeholder(client, xendit, placed_order):
    placeholder = client.post("/api/payments/create", json={"orderId": placed_order["id"]})
    placeholder_id = placeholder.json()["data"]["payments"][0]["id"]

    response = client.post(f"/api/orders/{placed_order['id']}/payment")
    assert response.status_code == 200
    assert response.json()["data"]["payment"]["id"] == placeholder_id


def test_gateway_failure_maps_to_502(client, xendit, db_session, placed_order):
    xendit.create_error = IntegrationBadGatewayError(
        "xendit", "Xendit API Error: API_VALIDATION_ERROR - amount is invalid"
    )

    response = client.post(f"/api/orders/{placed_order['id']}/payment")
    assert response.status_code == 502
    assert response.json()["error"] == {
        "code": "PAYMENT_GATEWAY_ERROR",
        "message": "Xendit API Error: API_VALIDATION_ERROR - amount is invalid",
        "service": "xendit",
        "reason": "BAD_GATEWAY",
    }
    assert db_session.query(OrderPayment).count() == 0


def test_gateway_timeout_maps_to_502(client, xendit, placed_order):
    xendit.create_error = IntegrationTimeoutError("xendit")

    response = client.post(f"/api/orders/{placed_order['id']}/payment")
    assert response.status_code == 502
    assert response.json()["error"]["reason"] == "TIMEOUT"


def test_cancelled_order_cannot_be_paid(client, xendit, buyer_session, placed_order):
    client.post(
        f"/api/orders/{placed_order['id']}/cancel", json={"sessionId": str(buyer_session.id)}
    )

    response = client.post(f"/api/orders/{placed_order['id']}/payment")
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cannot pay for a cancelled order"
    assert xendit.created == []


def test_paid_webhook_accepts_pending_orders(client, xendit, placed_order):
    client.post(f"/api/orders/{placed_order['id']}/payment")

    response = _webhook(
        client,
        "inv-1",
        "PAID",
        payment_method="BANK_TRANSFER",
        paid_at="2026-10-19T03:15:00.000Z",
        amount=56000,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Webhook processed successfully"
    assert body["data"]["status"] == "paid"
    assert body["data"]["orderIds"] == [placed_order["id"]]
    assert body["data"]["updatedOrderIds"] == [placed_order["id"]]

    detail = client.get(f"/api/orders/{placed_order['id']}").json()["data"]
    assert detail["status"] == "accepted"
    assert detail["paymentStatus"] == "paid"
    assert detail["payment"]["paymentMethod"] == "BANK_TRANSFER"

    second_invoice = client.post(f"/api/orders/{placed_order['id']}/payment")
    assert second_invoice.status_code == 400
    assert second_invoice.json()["error"]["message"] == "Order is already paid"


def test_paid_webhook_keeps_merchant_progress(
    client, xendit, placed_order, login_admin
):
    client.post(f"/api/orders/{placed_order['id']}/payment")
    login_admin()
    client.patch(f"/api/orders/{placed_order['id']}/status", json={"status": "preparing"})

    response = _webhook(client, "inv-1", "SETTLED")
    assert response.status_code == 200
    assert response.json()["data"]["updatedOrderIds"] == []
    assert client.get(f"/api/orders/{placed_order['id']}/status").json()["data"]["status"] == (
        "preparing"
    )


def test_expired_webhook_cancels_pending_orders(client, xendit, placed_order):
    client.post(f"/api/orders/{placed_order['id']}/payment")

    response = _webhook(client, "inv-1", "EXPIRED")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "expired"

    status_response = client.get(f"/api/orders/{placed_order['id']}/status")
    assert status_response.json()["data"]["status"] == "cancelled"


@pytest.mark.parametrize(
    ("gateway_status", "order_status"),
    [("EXPIRED", "preparing"), ("FAILED", "ready"), ("PAID", "ready")],
)
def test_webhook_leaves_progressed_orders_untouched(
    client, xendit, placed_order, login_admin, gateway_status, order_status
):
    client.post(f"/api/orders/{placed_order['id']}/payment")
    login_admin()
    client.patch(f"/api/orders/{placed_order['id']}/status", json={"status": order_status})

    response = _webhook(client, "inv-1", gateway_status)
    assert response.status_code == 200
    assert response.json()["data"]["orderIds"] == [placed_order["id"]]
    assert response.json()["data"]["updatedOrderIds"] == []

    detail = client.get(f"/api/orders/{placed_order['id']}").json()["data"]
    assert detail["status"] == order_status


def test_webhook_rejects_bad_token(client, xendit, placed_order):
    client.post(f"/api/orders/{placed_order['id']}/payment")

    wrong = _webhook(client, "inv-1", "PAID", headers={"x-callback-token": "salah"})
    assert wrong.status_code == 401
    missing = _webhook(client, "inv-1", "PAID", headers={})
    assert missing.status_code == 401
    garbled = client.post(
        "/api/webhooks/xendit",
        content=b"{not json",
        headers={"x-callback-token": "salah", "content-type": "application/json"},
    )
    assert garbled.status_code == 401

    assert client.get(f"/api/orders/{placed_order['id']}/status").json()["data"]["status"] == (
        "pending"
    )


def test_webhook_for_unknown_invoice_is_404(client):
    response = _webhook(client, "inv-tidak-ada", "PAID")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Payment not found"


def test_webhook_handler_is_synchronous():
    assert not inspect.iscoroutinefunction(xendit_webhook_endpoint)


def test_webhook_rejects_malformed_bodies(client):
    not_json = client.post(
        "/api/webhooks/xendit",
        content=b"{not json",
        headers={**CALLBACK_HEADERS, "content-type": "application/json"},
    )
    assert not_json.status_code == 400
    assert not_json.json()["error"]["message"] == "Invalid JSON body"

    not_object = client.post("/api/webhooks/xendit", json=["PAID"], headers=CALLBACK_HEADERS)
    assert not_object.status_code == 400

    missing_status = client.post(
        "/api/webhooks/xendit", json={"id": "inv-1"}, headers=CALLBACK_HEADERS
    )
    assert missing_status.status_code == 400
    assert missing_status.json()["error"]["message"] == "Invalid webhook payload"


def test_sync_pulls_gateway_status(client, xendit, placed_order):
    created = client.post(f"/api/orders/{placed_order['id']}/payment").json()["data"]
    xendit.invoice_status = "PAID"

    response = client.get(f"/api/payments/{created['payment']['id']}?sync=true")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "paid"
    assert client.get(f"/api/orders/{placed_order['id']}/status").json()["data"]["status"] == (
        "accepted"
    )


def test_unknown_payment_is_404(client):
    assert client.get(f"/api/payments/{uuid4()}").status_code == 404
