import asyncio
from datetime import datetime, timezone, timedelta
from types import SimpleNamespace

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

import core.auth as auth
import routes.auth as auth_routes
from core.config import settings
from schemas.user import LoginRequest, GoogleLoginRequest, CreateAdminRequest


def _credentials(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_allow_list_is_case_insensitive():
    assert auth.is_email_allowed("admin@fest.org")
    assert auth.is_email_allowed("  ADMIN@FEST.ORG ")
    assert not auth.is_email_allowed("intruder@fest.org")
    assert not auth.is_email_allowed("")


def test_admin_required_accepts_allowed_token():
    token = auth.create_access_token("Second@Fest.org")
    payload = asyncio.run(auth.admin_required(_credentials(token)))
    assert payload["sub"] == "second@fest.org"
    assert payload["role"] == "admin"


def test_admin_required_rejects_missing_and_bad_tokens():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth.admin_required(None))
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth.admin_required(_credentials("not-a-jwt")))
    assert exc.value.status_code == 401

    expired = jwt.encode(
        {"sub": "admin@fest.org", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth.admin_required(_credentials(expired)))
    assert exc.value.status_code == 401


def test_removed_email_loses_access(monkeypatch):
    token = auth.create_access_token("second@fest.org")
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "admin@fest.org")

    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth.admin_required(_credentials(token)))
    assert exc.value.status_code == 403


def test_login_rate_limit(fake_redis, monkeypatch):
    monkeypatch.setattr(settings, "LOGIN_ATTEMPTS_PER_HOUR", 2)
    request = SimpleNamespace(client=SimpleNamespace(host="10.0.0.1"))
    other = SimpleNamespace(client=SimpleNamespace(host="10.0.0.2"))

    asyncio.run(auth.login_rate_limiter(request))
    asyncio.run(auth.login_rate_limiter(request))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth.login_rate_limiter(request))
    assert exc.value.status_code == 429

    asyncio.run(auth.login_rate_limiter(other))


def test_login_checks_allow_list_then_password(fake_db):
    fake_db.admins.docs.append({"email": "admin@fest.org", "password": auth.hash_password("s3cret-pass")})

    token = asyncio.run(auth_routes.login(LoginRequest(email="Admin@fest.org", password="s3cret-pass"), None))
    assert token.email == "admin@fest.org"
    assert jwt.decode(token.accessToken, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])["sub"] == "admin@fest.org"

    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth_routes.login(LoginRequest(email="admin@fest.org", password="wrong"), None))
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth_routes.login(LoginRequest(email="intruder@fest.org", password="s3cret-pass"), None))
    assert exc.value.status_code == 403


def test_google_login_requires_allowed_verified_email(fake_db, monkeypatch):
    claims = {"email": "Second@fest.org", "email_verified": True}
    monkeypatch.setattr(auth_routes, "verify_google_id_token", lambda token: claims)

    token = asyncio.run(auth_routes.google_login(GoogleLoginRequest(idToken="t"), None))
    assert token.email == "second@fest.org"

    claims["email_verified"] = False
    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth_routes.google_login(GoogleLoginRequest(idToken="t"), None))
    assert exc.value.status_code == 403


def test_google_sign_in_unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", None)
    with pytest.raises(HTTPException) as exc:
        auth.verify_google_id_token("token")
    assert exc.value.status_code == 503


def test_create_admin_requires_creation_token(fake_db):
    data = CreateAdminRequest(email="second@fest.org", password="long-enough")

    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth_routes.create_admin_user(data, "Bearer wrong"))
    assert exc.value.status_code == 403

    result = asyncio.run(auth_routes.create_admin_user(data, "Bearer create-me"))
    assert result["success"] is True
    stored = fake_db.admins.docs[0]
    assert auth.check_password("long-enough", stored["password"])

    with pytest.raises(HTTPException) as exc:
        asyncio.run(auth_routes.create_admin_user(data, "Bearer create-me"))
    assert exc.value.status_code == 400
