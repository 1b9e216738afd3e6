from __future__ import annotations

from fastapi import HTTPException, Request, status

SESSION_FLAG = "ui_authenticated"
SESSION_USER = "ui_username"


def is_logged_in(request: Request) -> bool:
    if "session" not in request.scope:
        return False
    return bool(request.session.get(SESSION_FLAG))


def session_user(request: Request) -> str | None:
    if not is_logged_in(request):
        return None
    return request.session.get(SESSION_USER)


async def require_ui_session(request: Request):
    """Gate for HTML pages. A 401 here is turned into a redirect to ``/login``."""

    if not is_logged_in(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required")
    return True
