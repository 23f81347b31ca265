import base64


def _basic(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def _order(client, session_id, merchant, menu, quantity=1):
    response = client.post(
        "/api/orders",
        json={
            "sessionId": str(session_id),
            "merchantId": str(merchant.id),
            "items": [{"menuId": str(menu.id), "quantity": quantity}],
        },
    )
    assert response.status_code == 201
    return response.json()["data"]


def test_admin_login_me_logout(client, login_admin):
    login = login_admin()
    assert login.json()["data"]["username"] == "admin"
    assert login.cookies.get("admin_session")

    me = client.get("/api/admin/me")
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "Administrator"
    assert me.json()["data"]["loginTime"] == login.json()["data"]["loginTime"]

    assert client.post("/api/admin/logout").status_code == 200
    assert client.get("/api/admin/me").status_code == 401


def test_admin_login_rejects_wrong_password(client):
    response = client.post("/api/admin/login", json={"username": "admin", "password": "salah"})
    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "INVALID_CREDENTIALS",
        "message": "Invalid username or password",
    }


def test_tampered_admin_cookie_is_ignored(client):
    client.cookies.set("admin_session", "eyJhbGciOiJIUzI1NiJ9.e30.bukan-tanda-tangan")
    assert client.get("/api/admin/me").status_code == 401


def test_basic_auth_check(client):
    ok = client.get("/api/admin/auth", headers=_basic("admin", "admin123"))
    assert ok.status_code == 200
    assert ok.json()["data"] == {"authenticated": True, "username": "admin"}

    denied = client.get("/api/admin/auth", headers=_basic("admin", "salah"))
    assert denied.status_code == 401
    assert denied.headers["www-authenticate"].startswith("Basic")

    missing = client.get("/api/admin/auth")
    assert missing.status_code == 401


def test_basic_auth_grants_admin_routes(client):
    response = client.get("/api/admin/merchants", headers=_basic("admin", "admin123"))
    assert response.status_code == 200


def test_merchant_session_is_not_admin(client, make_merchant, login_merchant):
    login_merchant(make_merchant())
    assert client.get("/api/admin/merchants").status_code == 401


def test_admin_profile_and_password(client, login_admin):
    login_admin()

    updated = client.put("/api/admin/profile", json={"name": "Pengelola Foodcourt"})
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "Pengelola Foodcourt"

    wrong = client.put(
        "/api/admin/profile/password",
        json={"currentPassword": "salah", "newPassword": "rahasia-baru-123"},
    )
    assert wrong.status_code == 400

    changed = client.put(
        "/api/admin/profile/password",
        json={"currentPassword": "admin123", "newPassword": "rahasia-baru-123"},
    )
    assert changed.status_code == 200
    relogin = client.post(
        "/api/admin/login", json={"username": "admin", "password": "rahasia-baru-123"}
    )
    assert relogin.status_code == 200


def test_admin_manages_merchants(client, login_admin):
    login_admin()

    created = client.post(
        "/api/admin/merchants/create",
        json={
            "phoneNumber": "+6281355554444",
            "password": "merchant123",
            "name": "Sate Madura",
            "isAvailable": False,
        },
    )
    assert created.status_code == 201
    merchant = created.json()["data"]
    assert merchant["isAvailable"] is False

    opened = client.patch(
        f"/api/admin/merchants/{merchant['id']}/availability", json={"isAvailable": True}
    )
    assert opened.status_code == 200
    assert opened.json()["data"]["isAvailable"] is True

    not_bool = client.patch(
        f"/api/admin/merchants/{merchant['id']}/availability", json={"isAvailable": "yes"}
    )
    assert not_bool.status_code == 400

    searched = client.get("/api/admin/merchants?search=sate")
    assert [entry["id"] for entry in searched.json()["data"]] == [merchant["id"]]

    login = client.post(
        "/api/merchants/login",
        json={"phoneNumber": "+6281355554444", "password": "merchant123"},
    )
    assert login.status_code == 200

    deleted = client.delete(f"/api/admin/merchants/{merchant['id']}")
    assert deleted.status_code == 200
    assert client.get("/api/admin/merchants").json()["pagination"]["totalCount"] == 0
    assert client.get("/api/merchants").json()["data"]["merchants"] == []


def test_admin_manages_catalog(client, make_merchant, login_admin):
    merchant = make_merchant("Warung Padang")
    login_admin()

    category = client.post(
        "/api/admin/categories/create", json={"merchantId": str(merchant.id), "name": "Lauk"}
    )
    assert category.status_code == 201
    category_id = category.json()["data"]["id"]
    assert category.json()["data"]["merchantName"] == "Warung Padang"

    menu = client.post(
        "/api/admin/menus/create",
        json={
            "merchantId": str(merchant.id),
            "categoryId": category_id,
            "name": "Rendang",
            "price": 30000,
        },
    )
    assert menu.status_code == 201
    menu_id = menu.json()["data"]["id"]
    assert menu.json()["data"]["merchantName"] == "Warung Padang"
    assert menu.json()["data"]["categoryName"] == "Lauk"

    toggled = client.patch(f"/api/admin/menus/{menu_id}/availability", json={"isAvailable": False})
    assert toggled.json()["data"]["isAvailable"] is False

    repriced = client.patch(f"/api/admin/menus/{menu_id}", json={"price": 32000})
    assert repriced.json()["data"]["price"] == 32000

    listed = client.get(f"/api/admin/menus?merchantId={merchant.id}&search=rend")
    assert [entry["id"] for entry in listed.json()["data"]] == [menu_id]

    categories = client.get(f"/api/admin/categories?merchantId={merchant.id}")
    assert categories.json()["data"][0]["menuCount"] == 1

    blocked = client.delete(f"/api/admin/categories/{category_id}")
    assert blocked.status_code == 409
    assert blocked.json()["error"]["menuCount"] == 1

    assert client.delete(f"/api/admin/menus/{menu_id}").status_code == 200
    assert client.delete(f"/api/admin/categories/{category_id}").status_code == 200


def test_admin_orders_status_and_payment(
    client, buyer_session, make_merchant, make_menu, login_admin
):
    merchant = make_merchant()
    other = make_merchant("Warung Lain")
    order = _order(client, buyer_session.id, merchant, make_menu(merchant, price=12000))
    _order(client, buyer_session.id, other, make_menu(other, "Es Kopi", price=9000))
    login_admin()

    by_merchant = client.get(f"/api/admin/orders?merchantId={merchant.id}")
    assert [entry["id"] for entry in by_merchant.json()["data"]] == [order["id"]]
    assert by_merchant.json()["data"][0]["merchantName"] == merchant.name

    status_response = client.patch(
        f"/api/admin/orders/{order['id']}/status", json={"status": "ready"}
    )
    assert status_response.status_code == 200
    shouted = client.patch(
        f"/api/admin/orders/{order['id']}/status", json={"status": "COMPLETED"}
    )
    assert shouted.status_code == 400
    assert client.get("/api/admin/orders?status=ready").json()["pagination"]["totalCount"] == 1

    paid = client.patch(f"/api/admin/orders/{order['id']}/payment", json={"status": "paid"})
    assert paid.status_code == 200
    assert paid.json()["message"] == "Order marked as paid"
    assert paid.json()["data"]["status"] == "ready"
    assert client.get(f"/api/orders/{order['id']}").json()["data"]["paymentStatus"] == "paid"

    unpaid = client.patch(f"/api/admin/orders/{order['id']}/payment", json={"status": "unpaid"})
    assert unpaid.json()["message"] == "Order marked as unpaid"
    detail = client.get(f"/api/orders/{order['id']}").json()["data"]
    assert detail["paymentStatus"] == "unpaid"
    assert detail["payment"]["paidAt"] is None

    bogus = client.patch(f"/api/admin/orders/{order['id']}/payment", json={"status": "refunded"})
    assert bogus.status_code == 400


def test_admin_dashboard_stats(client, buyer_session, make_merchant, make_menu, login_admin):
    merchant = make_merchant()
    make_merchant("Tutup", is_available=False)
    menu = make_menu(merchant, price=10000)
    order = _order(client, buyer_session.id, merchant, menu, quantity=3)
    _order(client, buyer_session.id, merchant, menu)
    login_admin()
    client.patch(f"/api/admin/orders/{order['id']}/status", json={"status": "completed"})

    response = client.get("/api/admin/dashboard/stats")
    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["totalOrders"] == 2
    assert stats["totalRevenue"] == 30000
    assert stats["completedOrders"] == 1
    assert stats["pendingOrders"] == 1
    assert stats["totalMerchants"] == 2
    assert stats["activeMerchants"] == 1
    assert stats["totalMenus"] == 1
    assert len(stats["revenueByDay"]) == 30
    assert len(stats["recentOrders"]) == 2
    assert stats["recentOrders"][0]["merchantName"] == merchant.name


def test_admin_routes_require_authentication(client):
    assert client.get("/api/admin/dashboard/stats").status_code == 401
    assert client.get("/api/admin/orders").status_code == 401
    create = client.post(
        "/api/admin/merchants/create",
        json={"phoneNumber": "+6281355554444", "password": "merchant123", "name": "Sate"},
    )
    assert create.status_code == 401
