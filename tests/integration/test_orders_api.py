from uuid import UUID, uuid4

from foodcourt.models.order import Order, OrderStatus


def _add_to_cart(client, session_id, menu, quantity=1):
    response = client.post(
        f"/api/sessions/{session_id}/cart",
        json={"menuId": str(menu.id), "quantity": quantity},
    )
    assert response.status_code == 201
    return response


def _create_order(client, session_id, merchant, items=None, **extra):
    payload = {"sessionId": str(session_id), "merchantId": str(merchant.id), **extra}
    if items is not None:
        payload["items"] = [
            {"menuId": str(menu.id), "quantity": quantity} for menu, quantity in items
        ]
    return client.post("/api/orders", json=payload)


def _placed_order(client, buyer_session, merchant, menu, quantity=1):
    response = _create_order(client, buyer_session.id, merchant, items=[(menu, quantity)])
    assert response.status_code == 201
    return response.json()["data"]


def test_checkout_from_cart_uses_snapshots_and_clears_cart(
    client, db_session, buyer_session, make_merchant, make_menu
):
    merchant = make_merchant()
    other = make_merchant("Warung Lain")
    nasi = make_menu(merchant, "Nasi Uduk", price=10000)
    telur = make_menu(merchant, "Telur Balado", price=10000)
    other_menu = make_menu(other, "Es Doger", price=8000)
    _add_to_cart(client, buyer_session.id, nasi, quantity=2)
    _add_to_cart(client, buyer_session.id, telur)
    _add_to_cart(client, buyer_session.id, other_menu)

    nasi.price = 12000
    db_session.commit()

    response = _create_order(
        client,
        buyer_session.id,
        merchant,
        customerName="Budi",
        customerPhone="0812-3456-7890",
        notes="Tanpa sambal",
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Order created successfully"
    order = body["data"]
    assert UUID(order["id"]).version == 7
    assert order["status"] == "pending"
    assert order["totalAmount"] == 30000
    assert order["customerPhone"] == "081234567890"
    assert sorted((item["menuName"], item["unitPrice"]) for item in order["items"]) == [
        ("Nasi Uduk", 10000),
        ("Telur Balado", 10000),
    ]

    cart = client.get(f"/api/sessions/{buyer_session.id}/cart").json()["data"]
    assert [item["menuName"] for item in cart["items"]] == ["Es Doger"]


def test_checkout_with_empty_cart_is_rejected(client, buyer_session, make_merchant):
    response = _create_order(client, buyer_session.id, make_merchant())
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cart is empty for this merchant"


def test_explicit_items_are_priced_from_the_menu(client, buyer_session, make_merchant, make_menu):
    merchant = make_merchant()
    menu = make_menu(merchant, "Gado-gado", price=17000)

    response = client.post(
        "/api/orders",
        json={
            "sessionId": str(buyer_session.id),
            "merchantId": str(merchant.id),
            "items": [{"menuId": str(menu.id), "quantity": 2, "unitPrice": 1}],
        },
    )
    assert response.status_code == 201
    order = response.json()["data"]
    assert order["totalAmount"] == 34000
    assert order["items"][0]["unitPrice"] == 17000
    assert order["items"][0]["subtotal"] == 34000


def test_empty_items_list_is_a_validation_error(client, buyer_session, make_merchant):
    response = _create_order(client, buyer_session.id, make_merchant(), items=[])
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unavailable_menu_blocks_the_order(
    client, db_session, buyer_session, make_merchant, make_menu
):
    merchant = make_merchant()
    menu = make_menu(merchant, "Rawon", is_available=False)

    response = _create_order(client, buyer_session.id, merchant, items=[(menu, 1)])
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MENU_UNAVAILABLE"
    assert db_session.query(Order).count() == 0


def test_closed_merchant_cannot_take_orders(
    client, db_session, buyer_session, make_merchant, make_menu
):
    merchant = make_merchant()
    menu = make_menu(merchant)
    merchant.is_available = False
    db_session.commit()

    response = _create_order(client, buyer_session.id, merchant, items=[(menu, 1)])
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MERCHANT_INACTIVE"


def test_menu_of_another_merchant_is_not_found(client, buyer_session, make_merchant, make_menu):
    merchant = make_merchant()
    foreign_menu = make_menu(make_merchant("Warung Lain"))

    response = _create_order(client, buyer_session.id, merchant, items=[(foreign_menu, 1)])
    assert response.status_code == 404


def test_batch_creates_one_order_per_merchant(client, buyer_session, make_merchant, make_menu):
    first = make_merchant("Warung A")
    second = make_merchant("Warung B")
    ayam = make_menu(first, "Ayam Geprek", price=18000)
    jus = make_menu(second, "Jus Alpukat", price=12000)

    response = client.post(
        "/api/orders/batch",
        json={
            "sessionId": str(buyer_session.id),
            "customerName": "Sari",
            "customerPhone": "+6281299998888",
            "ordersByMerchant": {
                str(first.id): {"items": [{"menuId": str(ayam.id), "quantity": 2}]},
                str(second.id): {
                    "merchantName": "Warung B",
                    "items": [{"menuId": str(jus.id), "quantity": 1}],
                },
            },
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Successfully created 2 order(s)"
    assert body["data"]["totalOrders"] == 2
    assert body["data"]["totalAmount"] == 48000
    totals = {entry["merchantName"]: entry["totalAmount"] for entry in body["data"]["orders"]}
    assert totals == {"Warung A": 36000, "Warung B": 12000}


def test_batch_is_all_or_nothing(client, db_session, buyer_session, make_merchant, make_menu):
    merchant = make_merchant()
    menu = make_menu(merchant)

    response = client.post(
        "/api/orders/batch",
        json={
            "sessionId": str(buyer_session.id),
            "customerName": "Sari",
            "customerPhone": "081299998888",
            "ordersByMerchant": {
                str(merchant.id): {"items": [{"menuId": str(menu.id), "quantity": 1}]},
                str(uuid4()): {"items": [{"menuId": str(menu.id), "quantity": 1}]},
            },
        },
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"].startswith("Merchant not found")
    assert db_session.query(Order).count() == 0


def test_batch_requires_customer_phone(client, buyer_session, make_merchant, make_menu):
    merchant = make_merchant()
    menu = make_menu(merchant)

    response = client.post(
        "/api/orders/batch",
        json={
            "sessionId": str(buyer_session.id),
            "customerName": "Sari",
            "customerPhone": "   ",
            "ordersByMerchant": {
                str(merchant.id): {"items": [{"menuId": str(menu.id), "quantity": 1}]}
            },
        },
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_list_orders_by_ids_and_session(client, buyer_session, make_merchant, make_menu):
    merchant = make_merchant()
    menu = make_menu(merchant, "Pecel Lele", price=16000)
    first = _placed_order(client, buyer_session, merchant, menu)
    second = _placed_order(client, buyer_session, merchant, menu, quantity=2)

    by_ids = client.get(f"/api/orders?ids={first['id']},bukan-uuid,{uuid4()}")
    assert by_ids.status_code == 200
    assert [order["id"] for order in by_ids.json()["data"]] == [first["id"]]
    assert by_ids.json()["data"][0]["merchantName"] == merchant.name
    assert by_ids.json()["data"][0]["paymentStatus"] == "unpaid"

    by_session = client.get(f"/api/orders?sessionId={buyer_session.id}")
    assert [order["id"] for order in by_session.json()["data"]] == [second["id"], first["id"]]


def test_list_orders_without_filter_needs_merchant(client, make_merchant, login_merchant):
    anonymous = client.get("/api/orders")
    assert anonymous.status_code == 400

    login_merchant(make_merchant())
    signed_in = client.get("/api/orders")
    assert signed_in.status_code == 200
    assert signed_in.json()["data"] == []


def test_order_detail_has_merchant_contact_and_payment_state(
    client, buyer_session, make_merchant, make_menu
):
    merchant = make_merchant("Mie Aceh Bang Jali", phone_number="081377776666")
    menu = make_menu(merchant, "Mie Aceh", price=25000)
    order = _placed_order(client, buyer_session, merchant, menu)

    response = client.get(f"/api/orders/{order['id']}")
    assert response.status_code == 200
    detail = response.json()["data"]
    assert detail["merchant"]["name"] == "Mie Aceh Bang Jali"
    assert detail["merchant"]["whatsappUrl"].startswith("https://wa.me/6281377776666?text=")
    assert order["id"][-8:].upper() in detail["merchant"]["whatsappUrl"]
    assert detail["payment"] is None
    assert detail["paymentStatus"] == "unpaid"

    status_only = client.get(f"/api/orders/{order['id']}/status")
    assert status_only.json()["data"]["status"] == "pending"


def test_unknown_order_is_404(client):
    assert client.get(f"/api/orders/{uuid4()}").status_code == 404
    assert client.get("/api/orders/bukan-uuid").status_code == 404


def test_buyer_can_cancel_pending_order_from_own_session(
    client, buyer_session, make_merchant, make_menu
):
    merchant = make_merchant()
    order = _placed_order(client, buyer_session, merchant, make_menu(merchant))

    stranger = client.post(f"/api/orders/{order['id']}/cancel", json={"sessionId": str(uuid4())})
    assert stranger.status_code == 403

    cancelled = client.post(
        f"/api/orders/{order['id']}/cancel", json={"sessionId": str(buyer_session.id)}
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"

    again = client.post(
        f"/api/orders/{order['id']}/cancel", json={"sessionId": str(buyer_session.id)}
    )
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Cannot cancel order with status: cancelled"


def test_status_update_requires_valid_status_then_identity(
    client, db_session, buyer_session, make_merchant, make_menu, login_merchant
):
    merchant = make_merchant()
    order = _placed_order(client, buyer_session, merchant, make_menu(merchant))
    url = f"/api/orders/{order['id']}/status"

    invalid = client.patch(url, json={"status": "delivered"})
    assert invalid.status_code == 400
    assert invalid.json()["error"]["message"].startswith("Invalid status. Must be one of:")

    for wrong_case in ("COMPLETED", " pending ", "Ready"):
        assert client.patch(url, json={"status": wrong_case}).status_code == 400

    anonymous = client.patch(url, json={"status": "accepted"})
    assert anonymous.status_code == 401

    login_merchant(make_merchant("Warung Lain"))
    foreign = client.patch(url, json={"status": "accepted"})
    assert foreign.status_code == 403

    stored = db_session.get(Order, UUID(order["id"]))
    db_session.refresh(stored)
    assert stored.status == OrderStatus.PENDING


def test_owner_can_set_any_status(client, buyer_session, make_merchant, make_menu, login_merchant):
    merchant = make_merchant()
    order = _placed_order(client, buyer_session, merchant, make_menu(merchant))
    login_merchant(merchant)
    url = f"/api/orders/{order['id']}/status"

    assert client.patch(url, json={"status": "completed"}).json()["data"]["status"] == "completed"
    assert client.patch(url, json={"status": "preparing"}).json()["data"]["status"] == "preparing"
    assert client.patch(url, json={"status": "Preparing"}).status_code == 400


def test_owner_marks_order_paid(client, buyer_session, make_merchant, make_menu, login_merchant):
    merchant = make_merchant()
    order = _placed_order(client, buyer_session, merchant, make_menu(merchant, price=20000))

    assert client.patch(f"/api/orders/{order['id']}/payment").status_code == 401

    login_merchant(merchant)
    response = client.patch(f"/api/orders/{order['id']}/payment")
    assert response.status_code == 200
    assert response.json()["message"] == "Order marked as paid"
    assert response.json()["data"]["status"] == "completed"

    detail = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert detail["paymentStatus"] == "paid"
    assert detail["payment"]["paymentMethod"] == "cash"
    assert detail["payment"]["amount"] == 20000
