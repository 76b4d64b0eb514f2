import asyncio
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Depends, Header

from schemas.user import TokenResponse, LoginRequest, GoogleLoginRequest, CreateAdminRequest
from core.config import settings
from core.db import db
from core.auth import (
    is_email_allowed,
    create_access_token,
    hash_password,
    check_password,
    verify_google_id_token,
    current_admin,
    login_rate_limiter,
)

log = structlog.get_logger()
router = APIRouter(prefix="/api/auth")

NOT_AUTHORIZED = "Your email is not authorized to access this admin panel."


def _token_response(email: str) -> TokenResponse:
    return TokenResponse(
        accessToken=create_access_token(email),
        expiresIn=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        email=email.lower(),
    )


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, _: None = Depends(login_rate_limiter)):
    email = data.email.lower()
    # allow-list first: unknown addresses never reach the account store
    if not is_email_allowed(email):
        log.warning("auth.login_not_allowed", email=email)
        raise HTTPException(403, NOT_AUTHORIZED)

    admin = await db.admins.find_one({"email": email})
    if not admin or not check_password(data.password, admin["password"]):
        log.warning("auth.login_failed", email=email)
        raise HTTPException(401, "Invalid email or password")

    log.info("auth.login", email=email, method="password")
    return _token_response(email)


@router.post("/google", response_model=TokenResponse)
async def google_login(data: GoogleLoginRequest, _: None = Depends(login_rate_limiter)):
    claims = await asyncio.to_thread(verify_google_id_token, data.idToken)
    email = (claims.get("email") or "").lower()
    if not email or not claims.get("email_verified") or not is_email_allowed(email):
        log.warning("auth.google_not_allowed", email=email)
        raise HTTPException(
            403,
            f"{NOT_AUTHORIZED} Please contact the administrator.",
        )
    log.info("auth.login", email=email, method="google")
    return _token_response(email)


@router.get("/me")
async def me(email: str = Depends(current_admin)):
    return {"email": email, "authorized": True}


@router.post("/create", status_code=201)
async def create_admin_user(
    data: CreateAdminRequest,
    authorization: str = Header(..., alias="Authorization")
):
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(400, "Malformed Authorization header")

    if not settings.ADMIN_CREATION_TOKEN or parts[1] != settings.ADMIN_CREATION_TOKEN:
        raise HTTPException(403, "Invalid creation token")

    email = data.email.lower()
    if not is_email_allowed(email):
        raise HTTPException(403, NOT_AUTHORIZED)

    existing = await db.admins.find_one({"email": email})
    if existing:
        raise HTTPException(400, "Admin account already exists")

    await db.admins.insert_one({
        "email": email,
        "password": hash_password(data.password),
        "createdAt": datetime.now(timezone.utc),
    })
    log.info("auth.admin_created", email=email)

    return {"success": True, "message": "Admin account created"}
