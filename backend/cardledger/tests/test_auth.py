"""
Tests for authentication and user management.
"""
from cardledger.core.config import settings
from cardledger.db.init_db import bootstrap_super_admin
from cardledger.models import User, UserRole


def test_login_and_me(client, make_user):
    make_user(name="Sara", email="sara@example.com", password="password123")

    response = client.post("/api/auth/login", json={"email": "SARA@example.com", "password": "password123"})

    assert response.status_code == 200
    token = response.json()["access_token"]
    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "sara@example.com"
    assert me.json()["business_unit"] == "Wytlabs"


def test_login_failures(client, db, make_user):
    user = make_user(name="Sara", email="sara@example.com")

    wrong = client.post("/api/auth/login", json={"email": "sara@example.com", "password": "nope-nope"})
    assert wrong.status_code == 401

    user.is_active = False
    db.commit()
    inactive = client.post("/api/auth/login", json={"email": "sara@example.com", "password": "password123"})
    assert inactive.status_code == 403


def test_invalid_token(client):
    response = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_super_admin_creates_users(client, make_user, headers_for):
    admin = make_user(name="Sam", role=UserRole.SUPER_ADMIN, business_unit=None)
    payload = {
        "name": "Raghav Sharma",
        "email": "Raghav@example.com",
        "password": "password123",
        "role": "service_handler",
        "business_unit": "Wytlabs",
    }

    created = client.post("/api/users", json=payload, headers=headers_for(admin))
    assert created.status_code == 201
    assert created.json()["email"] == "raghav@example.com"

    duplicate = client.post("/api/users", json=payload, headers=headers_for(admin))
    assert duplicate.status_code == 400

    missing_unit = dict(payload, email="other@example.com", business_unit=None)
    assert client.post("/api/users", json=missing_unit, headers=headers_for(admin)).status_code == 400

    spoc = make_user(name="Sara")
    assert client.post("/api/users", json=dict(payload, email="x@example.com"), headers=headers_for(spoc)).status_code == 403


def test_bootstrap_super_admin(db, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_EMAIL", "Root@example.com")
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", "change-me-now")

    assert bootstrap_super_admin(db) is True
    assert bootstrap_super_admin(db) is False
    admin = db.query(User).one()
    assert admin.email == "root@example.com"
    assert admin.role == UserRole.SUPER_ADMIN
