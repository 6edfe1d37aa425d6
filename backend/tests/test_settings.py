import pytest

from models.setting import Setting
from services.settings import SETTINGS_CACHE_KEY, SettingsService
from repositories.settings import SettingsRepository, parse_value, serialize_value
from utils.cache import JsonCache, MemoryCacheClient
from utils.errors import ApiError


class BrokenCacheClient:
    def get(self, key):
        raise ConnectionError("cache down")

    def setex(self, key, ttl, value):
        raise ConnectionError("cache down")

    def delete(self, *keys):
        raise ConnectionError("cache down")


def service(db, client=None):
    return SettingsService(SettingsRepository(db), JsonCache(client or MemoryCacheClient(), ttl=60))


def test_value_types_round_trip():
    assert serialize_value(True) == ("true", "boolean")
    assert serialize_value(15) == ("15", "number")
    assert parse_value("15", "number") == 15
    assert parse_value("12.5", "number") == 12.5
    assert parse_value("false", "boolean") is False
    assert parse_value('["Île-de-France"]', "json") == ["Île-de-France"]


def test_delivery_fee_defaults(db):
    settings = service(db)
    assert settings.get_delivery_fee(149.99) == 15.0
    assert settings.get_delivery_fee(150) == 0.0
    assert settings.get_min_order_amount() == 0
    assert settings.allows_backorder() is False


def test_reads_are_cached_until_invalidated(db):
    client = MemoryCacheClient()
    settings = service(db, client)
    settings.update_category("delivery", {"delivery_standard_fee": 9.9})
    assert settings.get_delivery_fee(10) == 9.9
    assert client.get(SETTINGS_CACHE_KEY) is not None

    # Direct database change is not seen while the cache is warm
    db.query(Setting).filter(Setting.key == "delivery_standard_fee").update({"value": "4"})
    db.commit()
    assert settings.get_delivery_fee(10) == 9.9

    settings.invalidate()
    assert settings.get_delivery_fee(10) == 4


def test_cache_failures_fall_back_to_database(db):
    settings = service(db, BrokenCacheClient())
    settings.update_category("order", {"order_min_amount": 50})
    assert settings.get_min_order_amount() == 50


def test_unreadable_cache_entry_is_a_miss(db):
    client = MemoryCacheClient()
    client.setex(SETTINGS_CACHE_KEY, 60, "{not json")
    settings = service(db, client)
    assert settings.get_delivery_fee(10) == 15.0


@pytest.mark.parametrize("category, values", [
    ("delivery", {"delivery_standard_fee": -1}),
    ("order", {"order_default_tax_rate": 120}),
    ("order", {"order_allow_backorder": "oui"}),
    ("site", {"site_email": "pas-un-email"}),
    ("inconnue", {"x": 1}),
])
def test_invalid_values_are_rejected(db, category, values):
    with pytest.raises(ApiError) as exc:
        service(db).update_category(category, values)
    assert exc.value.status_code == 400
    assert db.query(Setting).count() == 0


def test_public_settings_hide_email_category(client, admin_headers):
    r = client.put("/api/settings", json={"settings": {
        "site": {"site_name": "Jana Distribution"},
        "email": {"email_sender": "noreply@jana-distribution.fr"},
    }}, headers=admin_headers)
    assert r.status_code == 200

    public = client.get("/api/settings/public").json()["data"]
    assert public["site"] == {"site_name": "Jana Distribution"}
    assert "email" not in public


def test_admin_update_invalidates_cache(client, admin_headers, auth_headers, make_product):
    product = make_product(price=10.0, tax_rate=20.0, stock=10)
    client.post("/api/cart/items", json={"productId": product.id, "quantity": 1}, headers=auth_headers)
    assert client.get("/api/cart/validate", headers=auth_headers).json()["data"]["isValid"] is True

    r = client.put("/api/settings/order", json={"settings": {"order_min_amount": 50}}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["order_min_amount"] == 50

    data = client.get("/api/cart/validate", headers=auth_headers).json()["data"]
    assert data["isValid"] is False
    assert data["errors"][0]["type"] == "MINIMUM_NOT_REACHED"
    assert "38.00" in data["errors"][0]["message"]


def test_settings_admin_only(client, auth_headers):
    assert client.get("/api/settings", headers=auth_headers).status_code == 403
    assert client.put("/api/settings/order", json={"settings": {}}, headers=auth_headers).status_code == 403
    assert client.post("/api/settings/cache/invalidate", headers=auth_headers).status_code == 403
