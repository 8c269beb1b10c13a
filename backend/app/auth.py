"""
Session Authentication

A single shared password unlocks the API. A successful login issues a
signed JWT stored in an httponly cookie; every protected route depends
on get_current_user, which rejects requests without a valid cookie.
"""

import hmac
from datetime import datetime, timedelta, timezone

from fastapi import Request, Response
from jose import JWTError, jwt

from app.config import get_settings
from app.errors import AuthenticationError

settings = get_settings()

ALGORITHM = "HS256"
COOKIE_NAME = "session_token"
TOKEN_SUBJECT = "jobcompass"


def create_session_token() -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": TOKEN_SUBJECT,
        "iat": issued,
        "exp": issued + timedelta(days=settings.session_ttl_days),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def verify_session_token(token: str) -> bool:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return False
    return claims.get("sub") == TOKEN_SUBJECT


def verify_password(password: str) -> bool:
    return hmac.compare_digest(password.encode(), settings.app_password.encode())


def set_session_cookie(response: Response) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=create_session_token(),
        max_age=settings.session_ttl_days * 86400,
        httponly=True,
        samesite="lax",
    )


async def get_current_user(request: Request) -> bool:
    token = request.cookies.get(COOKIE_NAME)
    if not token or not verify_session_token(token):
        raise AuthenticationError("Not authenticated")
    return True
