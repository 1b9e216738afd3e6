import os
import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from paintstock.db.session import Base
from paintstock.crud.inventory import create_item
from paintstock.crud.pricing import (
    delete_pricing_rule,
    get_pricing_rule,
    item_price_quote,
    list_pricing_rules,
    set_pricing_rule,
)
from paintstock.services.money import format_currency, money
from paintstock.services.pricing import apply_rule, markup_percentage, retail_price

from paintstock import models as _models  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def test_retail_price_and_markup():
    assert retail_price("40.00", 25) == Decimal("50.00")
    assert retail_price(19.99, "33.3") == Decimal("26.65")
    assert markup_percentage(40, 50) == Decimal("25.00")
    with pytest.raises(ValueError):
        markup_percentage(0, 10)


def test_apply_rule_clamps():
    rule = SimpleNamespace(markup_percentage=50, minimum_price=20, maximum_price=30)
    assert apply_rule(10, rule) == Decimal("20.00")
    assert apply_rule(16, rule) == Decimal("24.00")
    assert apply_rule(25, rule) == Decimal("30.00")
    assert apply_rule("12.345", None) == Decimal("12.35")


def test_money_helpers():
    assert money("1,234.565") == 1234.57
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-3) == "-$3.00"
    assert format_currency(None) == "$0.00"


def test_pricing_rule_upsert_and_quote(db_session):
    item = create_item(db_session, {"name": "Masking Paper", "sku": "MP-12", "unit_cost": 8})

    quote = item_price_quote(db_session, item)
    assert quote["retail_price"] == 8.0
    assert quote["markup_percentage"] is None
    assert quote["effective_markup"] == 0.0

    set_pricing_rule(db_session, item, {"markup_percentage": "35", "maximum_price": "10"})
    rule = set_pricing_rule(db_session, item, {"markup_percentage": 40, "minimum_price": "$9.00"})
    assert len(list_pricing_rules(db_session)) == 1
    assert rule.maximum_price is None
    assert rule.minimum_price == 9.0

    quote = item_price_quote(db_session, item)
    assert quote["retail_price"] == pytest.approx(11.2)
    assert quote["effective_markup"] == pytest.approx(40.0)

    delete_pricing_rule(db_session, rule)
    assert get_pricing_rule(db_session, item.id) is None


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "markup_percentage is required"),
        ({"markup_percentage": -150}, "at least -100"),
        ({"markup_percentage": 10, "minimum_price": "x"}, "minimum_price must be a number"),
        ({"markup_percentage": 10, "minimum_price": 5, "maximum_price": 4}, "below minimum_price"),
    ],
)
def test_pricing_rule_validation(db_session, payload, message):
    item = create_item(db_session, {"name": "Masking Paper", "sku": "MP-12", "unit_cost": 8})
    with pytest.raises(ValueError, match=message):
        set_pricing_rule(db_session, item, payload)
