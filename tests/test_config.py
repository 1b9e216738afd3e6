import os
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from paintstock.core.config import AppSettings


def test_allowed_origins_accepts_comma_separated_env(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://office.example, https://tablet.example ,")
    settings = AppSettings(_env_file=None)
    assert settings.ALLOWED_ORIGINS == ["https://office.example", "https://tablet.example"]


def test_database_url_alias(monkeypatch):
    monkeypatch.delenv("DB_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "sqlite:////tmp/paint.db")
    settings = AppSettings(_env_file=None)
    assert settings.DB_URL == "sqlite:////tmp/paint.db"


def test_domain_defaults(monkeypatch):
    for key in ("DEFAULT_UNIT", "SHOP_LOCATION", "REPORT_LOOKBACK_MONTHS"):
        monkeypatch.delenv(key, raising=False)
    settings = AppSettings(_env_file=None)
    assert settings.DEFAULT_UNIT == "each"
    assert settings.SHOP_LOCATION == "shop"
    assert settings.REPORT_LOOKBACK_MONTHS == 3


def test_blank_shop_location_rejected(monkeypatch):
    monkeypatch.setenv("SHOP_LOCATION", "   ")
    with pytest.raises(ValidationError):
        AppSettings(_env_file=None)


def test_templates_dir_defaults_inside_package(monkeypatch):
    monkeypatch.delenv("TEMPLATES_DIR", raising=False)
    settings = AppSettings(_env_file=None)
    assert settings.templates_dir == settings.BASE_DIR / "paintstock" / "templates"
