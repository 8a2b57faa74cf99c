"""Forgot-password and reset-password endpoint tests."""

import json

from src.api.passwords import PASSWORD_UPDATED, RESET_EMAIL_SENT
from src.models.user import User
from src.services.passwords import hash_password, verify_password


def _create_user(db, email="reset@example.com", password="oldpass123"):
    user = User(email=email, password=hash_password(password), is_pro=False)
    db.add(user)
    db.commit()
    return user


def test_forgot_password_sends_reset_email(client, auth_api):
    response = client.post("/api/forgot-password", json={"email": "reset@example.com"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": RESET_EMAIL_SENT}

    recover = auth_api.requests[0]
    assert recover.url.path == "/auth/v1/recover"
    assert recover.url.params["redirect_to"] == "http://testserver/reset-password"
    assert json.loads(recover.content) == {"email": "reset@example.com"}
    assert recover.headers["apikey"] == "service-role-key"


def test_forgot_password_same_reply_for_unknown_email(client, auth_api):
    """Existing and unknown emails get byte-identical replies."""
    known = client.post("/api/forgot-password", json={"email": "known@example.com"})

    auth_api.recover_status = 404
    unknown = client.post("/api/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.content == unknown.content


def test_forgot_password_validates_email(client, auth_api):
    missing = client.post("/api/forgot-password", json={})
    assert missing.status_code == 400
    assert missing.json()["message"] == "Email is required"

    malformed = client.post("/api/forgot-password", json={"email": "not an email"})
    assert malformed.status_code == 400
    assert malformed.json()["message"] == "Invalid email format"

    assert auth_api.requests == []


def test_forgot_password_provider_failure(client, auth_api):
    auth_api.recover_status = 500
    response = client.post("/api/forgot-password", json={"email": "reset@example.com"})
    assert response.status_code == 500
    assert response.json()["success"] is False


def test_forgot_password_without_auth_config(client, auth_provider):
    auth_provider.base_url = None
    response = client.post("/api/forgot-password", json={"email": "reset@example.com"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Server configuration error"}


def test_reset_password_updates_hash(client, db, auth_api):
    _create_user(db)
    auth_api.users.append({"id": "auth-42", "email": "reset@example.com"})

    response = client.post(
        "/api/reset-password", json={"email": "reset@example.com", "password": "newpass123"}
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": PASSWORD_UPDATED}

    db.expire_all()
    user = db.query(User).filter(User.email == "reset@example.com").one()
    assert verify_password("newpass123", user.password)
    assert not verify_password("oldpass123", user.password)

    put = [r for r in auth_api.requests if r.method == "PUT"]
    assert put[0].url.path == "/auth/v1/admin/users/auth-42"
    assert json.loads(put[0].content) == {"password": "newpass123"}


def test_reset_password_auth_failure_is_not_fatal(client, db, auth_api):
    """The Users table update stands even if the auth update fails."""
    _create_user(db)
    auth_api.users.append({"id": "auth-42", "email": "reset@example.com"})
    auth_api.update_status = 500

    response = client.post(
        "/api/reset-password", json={"email": "reset@example.com", "password": "newpass123"}
    )
    assert response.status_code == 200

    db.expire_all()
    user = db.query(User).filter(User.email == "reset@example.com").one()
    assert verify_password("newpass123", user.password)


def test_reset_password_without_auth_user(client, db, auth_api):
    _create_user(db)
    response = client.post(
        "/api/reset-password", json={"email": "reset@example.com", "password": "newpass123"}
    )
    assert response.status_code == 200
    assert auth_api.paths("PUT") == []


def test_reset_password_validation(client):
    missing = client.post("/api/reset-password", json={"email": "reset@example.com"})
    assert missing.status_code == 400

    short = client.post(
        "/api/reset-password", json={"email": "reset@example.com", "password": "12345"}
    )
    assert short.status_code == 400
    assert short.json()["message"] == "Password must be at least 6 characters long"
