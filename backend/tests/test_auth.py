from conftest import PASSWORD, headers_for
from models.users import User
from services.auth import FORGOT_PASSWORD_MESSAGE, hash_reset_token
from utils.tokenJWT import decode_access_token

RESET_TOKEN = "ab" * 32


def register_payload(**overrides):
    payload = {
        "email": "Nadia@Example.com",
        "password": PASSWORD,
        "firstName": "Nadia",
        "lastName": "Haddad",
        "acceptsTerms": True,
    }
    payload.update(overrides)
    return payload


def test_register_returns_token_and_profile(client, db):
    r = client.post("/api/auth/register", json=register_payload())
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["user"]["email"] == "nadia@example.com"
    assert data["user"]["role"] == "CLIENT"
    assert data["user"]["typeClient"] == "INDIVIDUAL"
    assert "passwordHash" not in data["user"]

    claims = decode_access_token(data["token"])
    assert claims["id"] == data["user"]["id"]
    assert claims["role"] == "CLIENT"
    assert claims["typeClient"] == "INDIVIDUAL"

    stored = db.query(User).filter(User.email == "nadia@example.com").one()
    assert stored.password_hash != PASSWORD


def test_register_duplicate_email_conflicts(client):
    assert client.post("/api/auth/register", json=register_payload()).status_code == 201
    r = client.post("/api/auth/register", json=register_payload(email="nadia@example.com"))
    assert r.status_code == 409
    assert r.json()["success"] is False


def test_register_validation(client):
    r = client.post("/api/auth/register", json=register_payload(password="faible"))
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "password"

    assert client.post("/api/auth/register", json=register_payload(acceptsTerms=False)).status_code == 400
    r = client.post("/api/auth/register", json=register_payload(typeClient="BUSINESS", siret="123"))
    assert r.status_code == 400


def test_register_business_account(client):
    r = client.post("/api/auth/register", json=register_payload(
        typeClient="BUSINESS", siret="12345678901234", companyName="Épicerie du Coin",
    ))
    assert r.status_code == 201
    user = r.json()["data"]["user"]
    assert user["typeClient"] == "BUSINESS"
    assert user["siret"] == "12345678901234"
    assert user["companyName"] == "Épicerie du Coin"


def test_login(client, user):
    r = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["data"]["user"]["id"] == user.id

    r = client.post("/api/auth/login", json={"email": user.email, "password": "Wrong123!"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    assert r.status_code == 401


def test_deactivated_account_is_refused(client, db, user):
    headers = headers_for(user)
    user.is_active = False
    db.commit()

    r = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert r.status_code == 403
    assert client.get("/api/auth/me", headers=headers).status_code == 403


def test_invalid_token(client):
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


def test_me_and_profile_update(client, auth_headers, user):
    r = client.get("/api/auth/me", headers=auth_headers)
    assert r.json()["data"]["email"] == user.email

    r = client.put("/api/auth/profile", json={"firstName": "Samira", "phone": "06 12 34 56 78"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["firstName"] == "Samira"
    assert r.json()["data"]["email"] == user.email


def test_change_password(client, auth_headers, user):
    r = client.put("/api/auth/password", json={"currentPassword": "Wrong123!", "newPassword": "Nouveau123!"},
                   headers=auth_headers)
    assert r.status_code == 400

    r = client.put("/api/auth/password", json={"currentPassword": PASSWORD, "newPassword": "Nouveau123!"},
                   headers=auth_headers)
    assert r.status_code == 200
    assert client.post("/api/auth/login", json={"email": user.email, "password": "Nouveau123!"}).status_code == 200


def test_forgot_password_answers_the_same_for_unknown_email(client, user):
    known = client.post("/api/auth/forgot-password", json={"email": user.email})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert known.json()["message"] == FORGOT_PASSWORD_MESSAGE


def test_forgot_password_hides_lookup_failures(client, user, monkeypatch):
    def broken_lookup(self, email):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("repositories.user.UserRepository.find_by_email", broken_lookup)
    r = client.post("/api/auth/forgot-password", json={"email": user.email})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["message"] == FORGOT_PASSWORD_MESSAGE


def test_reset_password_with_emailed_token(client, db, user, monkeypatch):
    monkeypatch.setattr("services.auth.secrets.token_hex", lambda n: RESET_TOKEN)
    client.post("/api/auth/forgot-password", json={"email": user.email})

    db.expire_all()
    stored = db.get(User, user.id)
    assert stored.reset_token_hash == hash_reset_token(RESET_TOKEN)

    r = client.post("/api/auth/reset-password", json={"token": RESET_TOKEN, "password": "Nouveau123!"})
    assert r.status_code == 200
    assert client.post("/api/auth/login", json={"email": user.email, "password": "Nouveau123!"}).status_code == 200

    # Tokens are single use
    r = client.post("/api/auth/reset-password", json={"token": RESET_TOKEN, "password": "Encore123!"})
    assert r.status_code == 400


def test_delete_account_anonymizes(client, db, auth_headers, user, make_product):
    client.post("/api/cart/items", json={"productId": make_product().id, "quantity": 1}, headers=auth_headers)

    r = client.request("DELETE", "/api/auth/account", json={"password": "Wrong123!"}, headers=auth_headers)
    assert r.status_code == 400

    r = client.request("DELETE", "/api/auth/account", json={"password": PASSWORD}, headers=auth_headers)
    assert r.status_code == 200

    db.expire_all()
    stored = db.get(User, user.id)
    assert stored.email == f"supprime_{user.id}@deleted.local"
    assert stored.is_active is False
    assert stored.carts == []
    assert client.get("/api/auth/me", headers=auth_headers).status_code == 403
