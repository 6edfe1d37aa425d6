from datetime import datetime, timedelta, timezone

from conftest import make_user, headers_for
from models.cart import Cart, CartItem
from repositories.cart import CartRepository


def add(client, headers, product_id, quantity=1):
    return client.post("/api/cart/items", json={"productId": product_id, "quantity": quantity}, headers=headers)


def test_cart_requires_token(client):
    r = client.get("/api/cart")
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_empty_cart_is_created_on_first_access(client, auth_headers, user):
    r = client.get("/api/cart", headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["userId"] == user.id
    assert body["data"]["items"] == []
    assert body["data"]["summary"]["totalTTC"] == 0


def test_line_uses_promo_price_and_tax(client, auth_headers, make_product):
    product = make_product(price=10.0, promo_price=8.0, tax_rate=20.0, stock=10)
    r = add(client, auth_headers, product.id, 2)
    assert r.status_code == 201

    item = r.json()["data"]["item"]
    assert item["effectivePrice"] == 8.0
    assert item["isOnSale"] is True
    assert item["subtotal"] == 16.0
    assert item["tvaAmount"] == 3.2
    assert item["total"] == 19.2

    summary = r.json()["data"]["cart"]["summary"]
    assert summary == {
        "itemCount": 1,
        "totalQuantity": 2,
        "subtotalHT": 16.0,
        "totalTVA": 3.2,
        "totalTTC": 19.2,
    }


def test_promo_above_price_is_ignored(client, auth_headers, make_product):
    product = make_product(price=10.0, promo_price=12.0)
    item = add(client, auth_headers, product.id, 1).json()["data"]["item"]
    assert item["effectivePrice"] == 10.0
    assert item["isOnSale"] is False


def test_adding_same_product_twice_sums_quantities(client, auth_headers, make_product):
    product = make_product(stock=10)
    add(client, auth_headers, product.id, 2)
    r = add(client, auth_headers, product.id, 3)
    assert r.status_code == 201
    cart = r.json()["data"]["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 5


def test_repeat_add_takes_current_price(client, db, auth_headers, make_product):
    product = make_product(price=10.0, stock=10)
    add(client, auth_headers, product.id, 2)
    product.promo_price = 7.0
    db.commit()

    r = add(client, auth_headers, product.id, 4)
    assert r.status_code == 201
    item = r.json()["data"]["item"]
    assert item["unitPrice"] == 7.0
    assert item["quantity"] == 6


def test_backorder_setting_allows_adding_beyond_stock(client, auth_headers, admin_headers, make_product):
    product = make_product(stock=2)
    assert add(client, auth_headers, product.id, 5).status_code == 400

    r = client.put("/api/settings/order", json={"settings": {"order_allow_backorder": True}}, headers=admin_headers)
    assert r.status_code == 200

    r = add(client, auth_headers, product.id, 5)
    assert r.status_code == 201
    assert r.json()["data"]["item"]["quantity"] == 5


def test_add_beyond_stock_reports_remaining(client, auth_headers, make_product):
    product = make_product(stock=5)
    add(client, auth_headers, product.id, 4)
    r = add(client, auth_headers, product.id, 2)
    assert r.status_code == 400
    body = r.json()
    assert "vous pouvez encore en ajouter 1" in body["message"]
    assert body["details"] == {"available": 5, "inCart": 4}


def test_add_more_than_stock_to_empty_cart(client, auth_headers, make_product):
    product = make_product(stock=3)
    r = add(client, auth_headers, product.id, 4)
    assert r.status_code == 400
    assert r.json()["details"]["available"] == 3


def test_add_inactive_or_missing_product(client, auth_headers, make_product):
    inactive = make_product(is_active=False)
    assert add(client, auth_headers, inactive.id).status_code == 400
    assert add(client, auth_headers, 9999).status_code == 404


def test_quantity_bounds(client, auth_headers, make_product):
    product = make_product(stock=10)
    for quantity in (0, -1, 10000, 1.5, "2"):
        r = add(client, auth_headers, product.id, quantity)
        assert r.status_code == 400, quantity
        assert r.json()["success"] is False
        assert r.json()["errors"][0]["field"] == "quantity"


def test_update_and_remove_item(client, auth_headers, make_product):
    product = make_product(stock=10)
    item_id = add(client, auth_headers, product.id, 1).json()["data"]["item"]["id"]

    r = client.put(f"/api/cart/items/{item_id}", json={"quantity": 7}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["item"]["quantity"] == 7

    r = client.put(f"/api/cart/items/{item_id}", json={"quantity": 11}, headers=auth_headers)
    assert r.status_code == 400

    r = client.delete(f"/api/cart/items/{item_id}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["items"] == []


def test_items_of_another_user_are_not_found(client, db, auth_headers, make_product):
    product = make_product(stock=10)
    intruder = make_user(db, "intruder@example.com")
    item_id = add(client, auth_headers, product.id, 1).json()["data"]["item"]["id"]

    r = client.put(f"/api/cart/items/{item_id}", json={"quantity": 2}, headers=headers_for(intruder))
    assert r.status_code == 404
    r = client.delete(f"/api/cart/items/{item_id}", headers=headers_for(intruder))
    assert r.status_code == 404


def test_clear_cart(client, auth_headers, make_product):
    r = client.delete("/api/cart", headers=auth_headers)
    assert r.status_code == 400

    add(client, auth_headers, make_product().id, 1)
    r = client.delete("/api/cart", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["items"] == []


def test_count_display(client, db, auth_headers, user, make_product):
    product = make_product(stock=500)
    add(client, auth_headers, product.id, 3)
    r = client.get("/api/cart/count", headers=auth_headers)
    assert r.json()["data"] == {"count": 3, "displayCount": "3"}

    add(client, auth_headers, product.id, 100)
    r = client.get("/api/cart/count", headers=auth_headers)
    assert r.json()["data"] == {"count": 103, "displayCount": "99+"}


def test_duplicate_carts_are_merged(db, user, make_product):
    a, b, c = make_product(), make_product(), make_product()
    old = datetime.now(timezone.utc) - timedelta(days=1)
    recent = datetime.now(timezone.utc) - timedelta(hours=1)
    first = Cart(user_id=user.id, created_at=old)
    second = Cart(user_id=user.id)
    db.add_all([first, second])
    db.flush()
    db.add_all([
        CartItem(cart_id=first.id, product_id=a.id, quantity=1, unit_price=10.0, added_at=old),
        CartItem(cart_id=first.id, product_id=c.id, quantity=2, unit_price=9.0, added_at=old),
        CartItem(cart_id=second.id, product_id=b.id, quantity=4, unit_price=10.0),
        CartItem(cart_id=second.id, product_id=c.id, quantity=3, unit_price=8.0, added_at=recent),
    ])
    db.commit()
    first_id = first.id

    view = CartRepository(db).get_or_create_cart(user.id)

    assert view.id == first_id
    assert db.query(Cart).filter(Cart.user_id == user.id).count() == 1
    quantities = {it.product_id: it.quantity for it in view.items}
    assert quantities == {a.id: 1, b.id: 4, c.id: 5}
    merged = next(it for it in view.items if it.product_id == c.id)
    assert merged.unit_price == 8.0
    # SQLite hands datetimes back without tzinfo
    assert merged.added_at.replace(tzinfo=None) == recent.replace(tzinfo=None)


def test_get_cart_flags_stock_problems(client, db, auth_headers, make_product):
    product = make_product(stock=5)
    add(client, auth_headers, product.id, 4)
    product.stock_quantity = 2
    db.commit()

    warnings = client.get("/api/cart", headers=auth_headers).json()["data"]["warnings"]
    assert warnings[0]["type"] == "INSUFFICIENT_STOCK"
    assert warnings[0]["available"] == 2
    assert warnings[0]["requested"] == 4


def test_validate_and_fix(client, db, auth_headers, make_product):
    r = client.get("/api/cart/validate", headers=auth_headers)
    assert r.json()["data"]["isValid"] is False
    assert r.json()["data"]["errors"][0]["type"] == "EMPTY_CART"

    short = make_product(stock=5, name="Semoule")
    gone = make_product(stock=5, name="Harissa")
    fine = make_product(stock=5, name="Thé")
    for p in (short, gone, fine):
        add(client, auth_headers, p.id, 3)
    short.stock_quantity = 1
    gone.stock_quantity = 0
    db.commit()

    data = client.get("/api/cart/validate", headers=auth_headers).json()["data"]
    assert data["isValid"] is False
    assert [e["type"] for e in data["errors"]] == ["OUT_OF_STOCK"]
    assert [w["type"] for w in data["warnings"]] == ["INSUFFICIENT_STOCK"]

    r = client.post("/api/cart/fix", headers=auth_headers)
    assert r.status_code == 200
    changes = {c["productName"]: c for c in r.json()["data"]["changes"]}
    assert changes["Harissa"]["type"] == "REMOVED"
    assert changes["Semoule"]["type"] == "QUANTITY_ADJUSTED"
    assert changes["Semoule"]["newQuantity"] == 1
    assert "Thé" not in changes

    data = client.get("/api/cart/validate", headers=auth_headers).json()["data"]
    assert data["isValid"] is True
