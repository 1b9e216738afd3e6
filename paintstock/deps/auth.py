from __future__ import annotations

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.config import settings
from ..core.security import api_key_matches, decode_token
from ..middlewares import principal_ctx_var
from .ui_auth import is_logged_in, session_user


class AuthContext:
    def __init__(self, *, subject: str, scheme: str) -> None:
        self.subject = subject
        self.scheme = scheme


def _unauthorized(detail: str = "Unauthorized") -> None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


async def require_api_or_jwt(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    if is_logged_in(request):
        subject = session_user(request) or settings.UI_USERNAME
        _set_principal(request, subject)
        return AuthContext(subject=subject, scheme="session")

    api_key = (settings.API_KEY or "").strip()
    if api_key_matches(x_api_key):
        _set_principal(request, "api-key")
        return AuthContext(subject="api-key", scheme="api_key")

    # No key configured and no credentials offered: open mode for local installs.
    if not api_key and not authorization:
        _set_principal(request, "anonymous")
        return AuthContext(subject="anonymous", scheme="open")

    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            try:
                payload = decode_token(credentials, verify_type="access")
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
            _set_principal(request, payload.sub)
            request.state.token_payload = payload
            return AuthContext(subject=payload.sub, scheme="jwt")

    if api_key and settings.AUTH_ALLOW_API_KEY and x_api_key:
        _unauthorized("Invalid API key")
    _unauthorized("Authorization required")


async def require_ui_or_token(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AuthContext:
    return await require_api_or_jwt(request=request, authorization=authorization, x_api_key=x_api_key)


def current_principal(request: Request) -> str:
    """Who to stamp on ``created_by`` / ``moved_by`` / ``reconciled_by``."""

    principal = getattr(request.state, "principal", None)
    if principal:
        return principal
    return session_user(request) or "anonymous"
