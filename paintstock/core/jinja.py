"""Jinja2 environment for the HTML pages, with the display filters they use."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from ..services.money import format_currency
from .config import settings

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None


def _to_dt(value: Any) -> datetime | None:
    """Turn stored ``...Z`` timestamps into local, timezone-aware datetimes."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None and _LOCAL_TZ:
        dt = dt.replace(tzinfo=_LOCAL_TZ)
    if _LOCAL_TZ:
        dt = dt.astimezone(_LOCAL_TZ)
    return dt


def _fmt_dt(value: Any, fmt: str = "%Y-%m-%d %I:%M %p") -> str:
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_date(value: Any, fmt: str = "%Y-%m-%d") -> str:
    if isinstance(value, str) and len(value) == 10:
        return value
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_currency(value: Any) -> str:
    if value is None or value == "":
        return ""
    return format_currency(value)


def _fmt_status(value: Any) -> str:
    """``in_use`` -> ``In use``."""

    return str(value or "").replace("_", " ").capitalize()


def get_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(settings.TEMPLATES_DIR))
    env = templates.env
    env.filters["fmt_dt"] = _fmt_dt
    env.filters["fmt_date"] = _fmt_date
    env.filters["fmt_currency"] = _fmt_currency
    env.filters["fmt_status"] = _fmt_status
    env.globals["app_name"] = settings.APP_NAME
    env.globals["shop_location"] = settings.SHOP_LOCATION
    return templates
