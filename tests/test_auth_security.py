"""
Security tests for the authentication module.

Tests cover:
- Registration and login through the API
- Password strength validation (strong passwords, weak passwords, missing complexity)
- JWT security (missing secret key)
- Token expiration handling and role checks
"""
import pytest
from unittest.mock import patch

from auth_utils import create_jwt, create_expired_jwt, validate_password_strength
from config import settings
from models.enums import Role, UserStatus
from tests.conftest import auth_headers, DEFAULT_PASSWORD


def _register(client, username="newuser", password="StrongPass123", email=None):
    return client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        },
    )


def test_register_success(client):
    response = _register(client)

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["username"] == "newuser"
    assert data["user"]["role"] == "NORMAL"
    assert isinstance(data["token"], str)
    assert "auth_token=" in response.headers.get("set-cookie", "")


def test_register_duplicate_email_and_username(client):
    assert _register(client, username="first", email="same@example.com").status_code == 200

    response = _register(client, username="second", email="same@example.com")
    assert response.status_code == 400
    assert response.json()["detail"] == "该邮箱已被注册"

    response = _register(client, username="first", email="other@example.com")
    assert response.status_code == 400
    assert response.json()["detail"] == "该用户名已被使用"


def test_weak_password_rejection(client):
    """
    Passwords shorter than 8 characters or missing an uppercase letter,
    a lowercase letter or a digit are rejected with 400.
    """
    for index, password in enumerate(["Sh0rt", "lowercase123", "UPPERCASE123", "NoDigitsHere"]):
        response = _register(client, username=f"weak{index}", password=password)
        assert response.status_code == 400, f"Password '{password}' should be rejected"
        assert response.json()["detail"] == "密码必须包含大小写字母、数字，长度至少8位"


def test_validate_password_strength_empty():
    with pytest.raises(ValueError, match="密码不能为空"):
        validate_password_strength("   ")


def test_login_with_username_and_email(client, create_user):
    create_user("carol")

    for login in ("carol", "carol@example.com"):
        response = client.post("/api/auth/login", json={"login": login, "password": DEFAULT_PASSWORD})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "carol"


def test_login_wrong_password(client, create_user):
    create_user("dave")
    response = client.post("/api/auth/login", json={"login": "dave", "password": "WrongPass123"})
    assert response.status_code == 401
    assert response.json()["detail"] == "用户名或密码错误"


def test_login_banned_user(client, create_user):
    create_user("eve", status=UserStatus.BANNED)
    response = client.post("/api/auth/login", json={"login": "eve", "password": DEFAULT_PASSWORD})
    assert response.status_code == 403


def test_jwt_security_missing_key():
    """
    create_jwt() raises a ValueError if settings.jwt_secret_key is None or an empty string.
    """
    with patch('auth_utils.settings.jwt_secret_key', None):
        with pytest.raises(ValueError, match="JWT_SECRET_KEY is not set"):
            create_jwt("test_user_id")

    with patch('auth_utils.settings.jwt_secret_key', ""):
        with pytest.raises(ValueError, match="JWT_SECRET_KEY is not set"):
            create_jwt("test_user_id")


def test_authentication_failure_expired_token(client, create_user):
    """
    An endpoint protected by get_current_user returns HTTP 401 for an expired JWT,
    whether it arrives as a cookie or as a Bearer header.
    """
    if not settings.jwt_secret_key:
        pytest.skip("JWT_SECRET_KEY not set - cannot test expired token")

    user_id = create_user("frank")
    expired_token = create_expired_jwt(str(user_id), expired_seconds_ago=1)

    response = client.get("/api/auth/profile", cookies={"auth_token": expired_token})
    assert response.status_code == 401

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {expired_token}"})
    assert response.status_code == 401


def test_profile_with_valid_token(client, create_user):
    user_id = create_user("grace")
    response = client.get("/api/auth/profile", headers=auth_headers(user_id))
    assert response.status_code == 200
    assert response.json()["email"] == "grace@example.com"


def test_missing_token_rejected(client):
    assert client.get("/api/users/me").status_code == 401


def test_admin_routes_require_admin(client, create_user):
    normal_id = create_user("henry")
    admin_id = create_user("root", role=Role.ADMIN)

    assert client.get("/api/admin/users", headers=auth_headers(normal_id)).status_code == 403
    response = client.get("/api/admin/users", headers=auth_headers(admin_id, Role.ADMIN))
    assert response.status_code == 200
    assert response.json()["total"] == 2
