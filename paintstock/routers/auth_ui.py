from __future__ import annotations

import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from ..core.config import settings
from ..core.jinja import get_templates
from ..core.security import verify_ui_password
from ..deps.ui_auth import SESSION_FLAG, SESSION_USER

logger = logging.getLogger(__name__)

router = APIRouter()
templates = get_templates()


def _safe_next(target: str | None) -> str:
    # Only same-site relative paths.
    if not target or not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request, next: str = "/"):
    if request.session.get(SESSION_FLAG):
        return RedirectResponse(url=_safe_next(next), status_code=302)
    return templates.TemplateResponse(request, "login.html", {"next": _safe_next(next), "error": ""})


@router.post("/login", response_class=HTMLResponse)
def login_submit(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
):
    if username != (settings.UI_USERNAME or "") or not verify_ui_password(password):
        logger.warning("ui.login.failed", extra={"extra_data": {"username": username}})
        return templates.TemplateResponse(
            request,
            "login.html",
            {"next": _safe_next(next), "error": "Invalid username or password"},
            status_code=401,
        )
    request.session[SESSION_FLAG] = True
    request.session[SESSION_USER] = username
    logger.info("ui.login", extra={"extra_data": {"username": username}})
    return RedirectResponse(url=_safe_next(next), status_code=302)


@router.get("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse(url="/login", status_code=302)
