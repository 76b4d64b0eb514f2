import jwt
import bcrypt
import structlog
from datetime import datetime, timezone, timedelta
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests

from .config import settings
from .redis import redis


log = structlog.get_logger()
bearer = HTTPBearer(auto_error=False)


def allowed_emails() -> list:
    emails = settings.admin_emails
    if not emails:
        log.warning("auth.allow_list_empty")
    return emails


def is_email_allowed(email: str) -> bool:
    if not email:
        return False
    return email.strip().lower() in allowed_emails()


def create_access_token(email: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {"sub": email.lower(), "role": "admin", "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode(), hashed.encode())


def verify_google_id_token(token: str) -> dict:
    """Validate a Google ID token and return its claims (blocking call)."""
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(503, "Google sign-in is not configured")
    try:
        return id_token.verify_oauth2_token(
            token, google_requests.Request(), settings.GOOGLE_CLIENT_ID
        )
    except ValueError as e:
        log.warning("auth.google_token_invalid", error=str(e))
        raise HTTPException(401, "Invalid Google token")


async def admin_required(
    credentials: HTTPAuthorizationCredentials = Security(bearer)
) -> dict:
    if not credentials or not credentials.credentials:
        raise HTTPException(401, "Authentication required")
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.PyJWTError:
        raise HTTPException(401, "Authentication failed")
    # the allow-list is checked again so removing an address revokes live tokens
    if not is_email_allowed(payload.get("sub", "")):
        log.warning("auth.revoked", email=payload.get("sub"))
        raise HTTPException(403, "Your email is not authorized to access this admin panel.")
    return payload


async def current_admin(payload: dict = Depends(admin_required)) -> str:
    return payload["sub"]


def _limiter(scope: str, limit_setting: str, window: str):
    async def limiter(request: Request):
        ip = request.client.host if request.client else "unknown"
        now = datetime.now(timezone.utc)
        if window == "hour":
            bucket = now.strftime("%Y%m%d%H")
            ttl = 3600 - (now.minute * 60 + now.second)
        else:
            bucket = now.strftime("%Y%m%d")
            ttl = 86400 - (now.hour * 3600 + now.minute * 60 + now.second)
        key = f"rl:{scope}:{ip}:{bucket}"
        count = await redis.get(key) or 0
        if int(count) >= getattr(settings, limit_setting):
            log.warning("rate_limited", scope=scope, ip=ip)
            raise HTTPException(429, "Too many requests, try again later")
        await redis.incr(key)
        await redis.expire(key, max(ttl, 1))
    return limiter


login_rate_limiter = _limiter("login", "LOGIN_ATTEMPTS_PER_HOUR", "hour")
registration_rate_limiter = _limiter("register", "REGISTRATIONS_PER_DAY", "day")
