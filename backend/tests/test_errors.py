import pytest
from fastapi.testclient import TestClient

from config import settings
from main import app


@pytest.fixture
def lenient_client(client):
    # Unhandled errors come back as 500 responses instead of being re-raised
    return TestClient(app, raise_server_exceptions=False)


def fail_slug_lookup(monkeypatch):
    def broken(self, slug, exclude_id=None):
        raise RuntimeError("connexion perdue vers db-primaire")

    monkeypatch.setattr("repositories.category.CategoryRepository.slug_exists", broken)


def test_unique_violation_from_database_is_a_conflict(client, admin_headers, category, monkeypatch):
    # Skip the service pre-check so the insert itself hits the UNIQUE index
    monkeypatch.setattr("repositories.category.CategoryRepository.slug_exists", lambda self, slug, exclude_id=None: False)

    r = client.post("/api/categories", json={"name": "Épicerie"}, headers=admin_headers)
    assert r.status_code == 409
    assert r.json() == {"success": False, "message": "Cette ressource existe déjà"}


def test_server_error_is_generic_in_production(lenient_client, admin_headers, monkeypatch):
    fail_slug_lookup(monkeypatch)
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")

    r = lenient_client.post("/api/categories", json={"name": "Conserves"}, headers=admin_headers)
    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Erreur interne du serveur"}


def test_server_error_carries_trace_outside_production(lenient_client, admin_headers, monkeypatch):
    fail_slug_lookup(monkeypatch)
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")

    r = lenient_client.post("/api/categories", json={"name": "Conserves"}, headers=admin_headers)
    assert r.status_code == 500
    body = r.json()
    assert body["message"] == "connexion perdue vers db-primaire"
    assert any("RuntimeError" in line for line in body["stack"])
