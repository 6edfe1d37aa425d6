import re
from datetime import datetime

from conftest import ADDRESS, headers_for, make_user, stock_of
from models.order import Order


def order_payload(*lines, **extra):
    payload = {
        "lines": [{"productId": pid, "quantity": qty} for pid, qty in lines],
        "shippingAddress": ADDRESS,
    }
    payload.update(extra)
    return payload


def place(client, headers, *lines, **extra):
    return client.post("/api/orders", json=order_payload(*lines, **extra), headers=headers)


def test_insufficient_stock_creates_nothing(client, db, auth_headers, make_product):
    product = make_product(stock=3)
    r = place(client, auth_headers, (product.id, 5))
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["details"]["available"] == 3
    assert db.query(Order).count() == 0
    assert stock_of(db, product) == 3


def test_order_totals_and_stock(client, db, auth_headers, user, make_product):
    product = make_product(price=10.0, promo_price=8.0, tax_rate=20.0, stock=10)
    r = place(client, auth_headers, (product.id, 2))
    assert r.status_code == 201

    body = r.json()
    order = body["data"]
    today = datetime.now().strftime("%Y%m%d")
    assert order["orderNumber"] == f"CMD-{today}-0001"
    assert body["message"] == f"Commande {order['orderNumber']} créée avec succès"
    assert order["status"] == "EN_ATTENTE"
    assert order["userId"] == user.id
    assert order["subtotalHT"] == 16.0
    assert order["totalTVA"] == 3.2
    # Below the free delivery threshold: standard fee applies
    assert order["shippingFee"] == 15.0
    assert order["totalTTC"] == 34.2
    assert order["billingAddress"]["postalCode"] == "93100"
    assert order["possibleTransitions"] == ["PAYEE", "ANNULEE"]

    line = order["lines"][0]
    assert line["unitPriceHT"] == 8.0
    assert line["totalHT"] == 16.0
    assert line["taxAmount"] == 3.2
    assert line["totalTTC"] == 19.2

    assert stock_of(db, product) == 8


def test_order_numbers_increment(client, auth_headers, make_product):
    product = make_product(stock=10)
    first = place(client, auth_headers, (product.id, 1)).json()["data"]["orderNumber"]
    second = place(client, auth_headers, (product.id, 1)).json()["data"]["orderNumber"]
    assert re.fullmatch(r"CMD-\d{8}-\d{4}", second)
    assert int(second[-4:]) == int(first[-4:]) + 1


def test_free_delivery_above_threshold(client, auth_headers, make_product):
    product = make_product(price=50.0, tax_rate=5.5, stock=10)
    order = place(client, auth_headers, (product.id, 3)).json()["data"]
    assert order["subtotalHT"] == 150.0
    assert order["shippingFee"] == 0.0
    assert order["totalTTC"] == 158.25


def test_lines_are_frozen_after_price_change(client, db, auth_headers, make_product):
    product = make_product(price=10.0, stock=10, name="Riz basmati")
    order_id = place(client, auth_headers, (product.id, 1)).json()["data"]["id"]

    product.price = 99.0
    product.name = "Riz basmati premium"
    db.commit()

    order = client.get(f"/api/orders/{order_id}", headers=auth_headers).json()["data"]
    assert order["lines"][0]["unitPriceHT"] == 10.0
    assert order["lines"][0]["productName"] == "Riz basmati"
    assert order["subtotalHT"] == 10.0


def test_invalid_address_is_rejected(client, db, auth_headers, make_product):
    product = make_product(stock=10)
    bad = dict(ADDRESS, postalCode="9310")
    r = place(client, auth_headers, (product.id, 1), shippingAddress=bad)
    assert r.status_code == 400
    assert db.query(Order).count() == 0
    assert stock_of(db, product) == 10


def test_empty_and_unknown_lines(client, auth_headers):
    assert place(client, auth_headers).status_code == 400
    assert place(client, auth_headers, (4242, 1)).status_code == 404


def test_order_from_cart_empties_cart(client, db, auth_headers, make_product):
    product = make_product(stock=10)
    client.post("/api/cart/items", json={"productId": product.id, "quantity": 4}, headers=auth_headers)

    r = client.post("/api/orders/from-cart", json={"shippingAddress": ADDRESS}, headers=auth_headers)
    assert r.status_code == 201
    assert r.json()["data"]["lines"][0]["quantity"] == 4
    assert stock_of(db, product) == 6

    cart = client.get("/api/cart", headers=auth_headers).json()["data"]
    assert cart["items"] == []

    r = client.post("/api/orders/from-cart", json={"shippingAddress": ADDRESS}, headers=auth_headers)
    assert r.status_code == 400


def test_order_from_cart_keeps_cart_when_stock_short(client, db, auth_headers, make_product):
    product = make_product(stock=5)
    client.post("/api/cart/items", json={"productId": product.id, "quantity": 5}, headers=auth_headers)
    product.stock_quantity = 2
    db.commit()

    r = client.post("/api/orders/from-cart", json={"shippingAddress": ADDRESS}, headers=auth_headers)
    assert r.status_code == 400
    cart = client.get("/api/cart", headers=auth_headers).json()["data"]
    assert cart["items"][0]["quantity"] == 5
    assert stock_of(db, product) == 2


def test_client_cancel_restores_stock(client, db, auth_headers, make_product):
    a = make_product(stock=10)
    b = make_product(stock=4)
    order_id = place(client, auth_headers, (a.id, 3), (b.id, 4)).json()["data"]["id"]
    assert stock_of(db, a) == 7
    assert stock_of(db, b) == 0

    r = client.post(f"/api/orders/{order_id}/cancel", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "ANNULEE"
    assert r.json()["data"]["possibleTransitions"] == []
    assert stock_of(db, a) == 10
    assert stock_of(db, b) == 4

    r = client.post(f"/api/orders/{order_id}/cancel", headers=auth_headers)
    assert r.status_code == 400
    assert stock_of(db, a) == 10


def test_client_cannot_cancel_after_payment(client, auth_headers, admin_headers, make_product):
    product = make_product(stock=10)
    order_id = place(client, auth_headers, (product.id, 1)).json()["data"]["id"]
    client.patch(f"/api/admin/orders/{order_id}/status", json={"status": "PAYEE"}, headers=admin_headers)

    r = client.post(f"/api/orders/{order_id}/cancel", headers=auth_headers)
    assert r.status_code == 400


def test_orders_of_other_users_are_forbidden(client, db, auth_headers, make_product):
    product = make_product(stock=10)
    order = place(client, auth_headers, (product.id, 1)).json()["data"]
    stranger = headers_for(make_user(db, "stranger@example.com"))

    assert client.get(f"/api/orders/{order['id']}", headers=stranger).status_code == 403
    assert client.get(f"/api/orders/number/{order['orderNumber']}", headers=stranger).status_code == 403
    assert client.post(f"/api/orders/{order['id']}/cancel", headers=stranger).status_code == 403
    assert client.get("/api/orders/999", headers=stranger).status_code == 404


def test_list_my_orders_is_paginated(client, db, auth_headers, make_product):
    product = make_product(stock=20)
    for _ in range(3):
        place(client, auth_headers, (product.id, 1))
    other = headers_for(make_user(db, "someone@example.com"))
    place(client, other, (product.id, 1))

    r = client.get("/api/orders", params={"page": 1, "limit": 2}, headers=auth_headers)
    body = r.json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "page": 1, "limit": 2, "total": 3, "totalPages": 2, "hasNext": True, "hasPrev": False,
    }
