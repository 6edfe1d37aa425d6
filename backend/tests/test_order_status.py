import pytest

from conftest import ADDRESS, stock_of
from services.order import TRANSITIONS, can_transition, get_possible_transitions, get_status_label


@pytest.fixture
def order_for(client, auth_headers, make_product):
    def _place(quantity=2, stock=10):
        product = make_product(stock=stock)
        r = client.post(
            "/api/orders",
            json={"lines": [{"productId": product.id, "quantity": quantity}], "shippingAddress": ADDRESS},
            headers=auth_headers,
        )
        assert r.status_code == 201
        return r.json()["data"], product
    return _place


def set_status(client, headers, order_id, status, **extra):
    return client.patch(f"/api/admin/orders/{order_id}/status", json={"status": status, **extra}, headers=headers)


def test_transition_table():
    assert can_transition("EN_ATTENTE", "PAYEE")
    assert can_transition("EXPEDIEE", "LIVREE")
    assert not can_transition("EXPEDIEE", "ANNULEE")
    assert not can_transition("LIVREE", "EN_ATTENTE")
    assert get_possible_transitions("LIVREE") == []
    assert get_possible_transitions("ANNULEE") == []
    assert get_possible_transitions("UNKNOWN") == []
    # Legacy status behaves like PAYEE
    assert TRANSITIONS["CONFIRMEE"] == TRANSITIONS["PAYEE"]
    assert get_status_label("EN_PREPARATION") == "En préparation"


def test_full_lifecycle(client, admin_headers, order_for):
    order, _ = order_for()
    for status in ("PAYEE", "EN_PREPARATION", "EXPEDIEE", "LIVREE"):
        r = set_status(client, admin_headers, order["id"], status)
        assert r.status_code == 200, r.json()
        assert r.json()["data"]["status"] == status
    assert r.json()["data"]["possibleTransitions"] == []


def test_invalid_transition_names_allowed_targets(client, admin_headers, order_for):
    order, _ = order_for()
    for status in ("PAYEE", "EN_PREPARATION", "EXPEDIEE"):
        set_status(client, admin_headers, order["id"], status)

    r = set_status(client, admin_headers, order["id"], "EN_ATTENTE")
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == (
        "Transition de statut invalide: EXPEDIEE -> EN_ATTENTE. Transitions autorisées: LIVREE"
    )
    assert body["details"]["allowed"] == ["LIVREE"]


def test_delivered_order_is_final(client, admin_headers, order_for):
    order, _ = order_for()
    for status in ("PAYEE", "EN_PREPARATION", "EXPEDIEE", "LIVREE"):
        set_status(client, admin_headers, order["id"], status)
    r = set_status(client, admin_headers, order["id"], "EN_ATTENTE")
    assert r.status_code == 400
    assert "aucune" in r.json()["message"]


def test_admin_cancel_restores_stock(client, db, admin_headers, order_for):
    order, product = order_for(quantity=4, stock=6)
    assert stock_of(db, product) == 2

    set_status(client, admin_headers, order["id"], "PAYEE")
    r = set_status(client, admin_headers, order["id"], "ANNULEE", notes="Rupture fournisseur")
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "ANNULEE"
    assert r.json()["data"]["notes"] == "Rupture fournisseur"
    assert stock_of(db, product) == 6


def test_pending_order_can_be_cancelled(client, db, admin_headers, order_for):
    order, product = order_for(quantity=3, stock=3)
    r = set_status(client, admin_headers, order["id"], "ANNULEE")
    assert r.status_code == 200
    assert stock_of(db, product) == 3


def test_unknown_status_is_a_validation_error(client, admin_headers, order_for):
    order, _ = order_for()
    r = set_status(client, admin_headers, order["id"], "PERDUE")
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "status"


def test_status_change_requires_admin(client, auth_headers, order_for):
    order, _ = order_for()
    r = set_status(client, auth_headers, order["id"], "PAYEE")
    assert r.status_code == 403


def test_admin_order_listing_and_stats(client, admin_headers, order_for):
    first, _ = order_for(quantity=1)
    second, _ = order_for(quantity=1)
    set_status(client, admin_headers, second["id"], "ANNULEE")

    r = client.get("/api/admin/orders", params={"status": "ANNULEE"}, headers=admin_headers)
    assert [o["id"] for o in r.json()["data"]] == [second["id"]]

    r = client.get("/api/admin/orders", params={"search": first["orderNumber"]}, headers=admin_headers)
    assert [o["id"] for o in r.json()["data"]] == [first["id"]]

    stats = client.get("/api/admin/orders/stats", headers=admin_headers).json()["data"]
    assert stats["totalOrders"] == 1
    assert stats["totalRevenue"] == first["totalTTC"]
    assert stats["byStatus"]["EN_ATTENTE"] == 1
    assert stats["byStatus"]["ANNULEE"] == 1
