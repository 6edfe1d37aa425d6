from datetime import date

from conftest import ADDRESS, headers_for, make_user


def place(client, headers, product_id, quantity):
    r = client.post(
        "/api/orders",
        json={"lines": [{"productId": product_id, "quantity": quantity}], "shippingAddress": ADDRESS},
        headers=headers,
    )
    assert r.status_code == 201
    return r.json()["data"]


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["success"] is True


def test_not_found_uses_error_envelope(client):
    r = client.get("/api/products/12345")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Produit non trouvé"}


def test_admin_routes_reject_clients(client, auth_headers):
    for path in ("/api/admin/clients", "/api/admin/orders", "/api/admin/stats/dashboard",
                 "/api/products/admin/all"):
        r = client.get(path, headers=auth_headers)
        assert r.status_code == 403, path
        assert r.json()["success"] is False


def test_client_listing_with_totals(client, db, admin_headers, auth_headers, user, make_product):
    product = make_product(price=10.0, tax_rate=20.0, stock=20)
    place(client, auth_headers, product.id, 2)
    make_user(db, "pro@example.com", client_type="BUSINESS", company_name="Saveurs d'Orient")

    r = client.get("/api/admin/clients", params={"sortBy": "email", "sortDir": "asc"}, headers=admin_headers)
    assert r.status_code == 200
    clients = {c["email"]: c for c in r.json()["data"]}
    assert set(clients) == {"client@example.com", "pro@example.com"}
    assert clients["client@example.com"]["orderCount"] == 1
    assert clients["client@example.com"]["totalSpent"] == 39.0

    r = client.get("/api/admin/clients", params={"typeClient": "BUSINESS"}, headers=admin_headers)
    assert [c["email"] for c in r.json()["data"]] == ["pro@example.com"]

    stats = client.get("/api/admin/clients/stats", headers=admin_headers).json()["data"]
    assert stats["total"] == 2
    assert stats["business"] == 1


def test_client_detail_and_orders(client, admin_headers, auth_headers, user, make_product):
    product = make_product(stock=20)
    order = place(client, auth_headers, product.id, 1)

    r = client.get(f"/api/admin/clients/{user.id}", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["client"]["orderCount"] == 1
    assert data["recentOrders"][0]["orderNumber"] == order["orderNumber"]

    r = client.get(f"/api/admin/clients/{user.id}/orders", headers=admin_headers)
    assert r.json()["pagination"]["total"] == 1


def test_toggle_and_anonymize_client(client, admin_headers, user):
    headers = headers_for(user)
    r = client.patch(f"/api/admin/clients/{user.id}/toggle-status", headers=admin_headers)
    assert r.json()["data"]["isActive"] is False
    assert client.get("/api/cart", headers=headers).status_code == 403

    r = client.delete(f"/api/admin/clients/{user.id}", headers=admin_headers)
    assert r.status_code == 200
    r = client.get(f"/api/admin/clients/{user.id}", headers=admin_headers)
    assert r.json()["data"]["client"]["email"] == f"supprime_{user.id}@deleted.local"


def test_admin_accounts_are_not_clients(client, admin, admin_headers):
    assert client.get(f"/api/admin/clients/{admin.id}", headers=admin_headers).status_code == 404


def test_dashboard_and_rankings(client, admin_headers, auth_headers, category, make_product):
    rice = make_product(name="Riz", price=10.0, tax_rate=20.0, stock=50)
    tea = make_product(name="Thé", price=5.0, tax_rate=20.0, stock=50)
    place(client, auth_headers, rice.id, 3)
    place(client, auth_headers, tea.id, 5)
    cancelled = place(client, auth_headers, tea.id, 10)
    client.post(f"/api/orders/{cancelled['id']}/cancel", headers=auth_headers)

    dashboard = client.get("/api/admin/stats/dashboard", params={"period": "week"}, headers=admin_headers)
    assert dashboard.status_code == 200
    assert dashboard.json()["data"]["pendingOrders"] == 2

    top = client.get("/api/admin/stats/top-products", headers=admin_headers).json()["data"]
    assert [(p["productName"], p["quantitySold"]) for p in top] == [("Thé", 5), ("Riz", 3)]

    top_categories = client.get("/api/admin/stats/top-categories", headers=admin_headers).json()["data"]
    assert top_categories[0]["categoryName"] == category.name
    assert top_categories[0]["quantitySold"] == 8

    recent = client.get("/api/admin/stats/recent-orders", headers=admin_headers).json()["data"]
    assert len(recent) == 3

    overview = client.get("/api/admin/stats/global", headers=admin_headers).json()["data"]
    assert overview["totalOrders"] == 2
    assert overview["ordersByStatus"]["ANNULEE"] == 1

    evolution = client.get("/api/admin/stats/evolution", params={"days": 7}, headers=admin_headers).json()["data"]
    assert len(evolution) == 7
    assert evolution[-1]["date"] == date.today().isoformat()


def test_invalid_period_is_rejected(client, admin_headers):
    r = client.get("/api/admin/stats/dashboard", params={"period": "decade"}, headers=admin_headers)
    assert r.status_code == 400
