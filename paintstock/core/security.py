"""Credentials: the shared office login and the JWTs handed to API clients."""

from __future__ import annotations

import hmac
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "paintstock-clients"
ISSUER = "paintstock"


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    typ: str
    aud: str
    iss: str


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def verify_ui_password(plain: str) -> bool:
    """Check the office password against the bcrypt hash, or the plain setting when no hash is configured."""

    hashed = (settings.UI_PASSWORD_HASH or "").strip()
    if hashed:
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
    return hmac.compare_digest(plain or "", settings.UI_PASSWORD or "")


def api_key_matches(provided: str | None) -> bool:
    configured = (settings.API_KEY or "").strip()
    candidate = (provided or "").strip()
    return bool(configured and candidate) and hmac.compare_digest(configured, candidate)


def _encode_token(subject: str, expires_delta: timedelta, token_type: str) -> str:
    now = _now()
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "typ": token_type,
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_token_pair(subject: str) -> TokenPair:
    access_delta = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    refresh_delta = timedelta(days=settings.JWT_REFRESH_TTL_DAYS)
    return TokenPair(
        access_token=_encode_token(subject, access_delta, token_type="access"),
        refresh_token=_encode_token(subject, refresh_delta, token_type="refresh"),
        expires_in=int(access_delta.total_seconds()),
    )


def decode_token(token: str, *, verify_type: str | None = None) -> TokenPayload:
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        payload = TokenPayload.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
    if verify_type and payload.typ != verify_type:
        raise ValueError("Invalid token type")
    return payload


def refresh_access_token(refresh_token: str) -> TokenPair:
    payload = decode_token(refresh_token, verify_type="refresh")
    return issue_token_pair(payload.sub)
