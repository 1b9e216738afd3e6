import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from paintstock.db.session import Base
from paintstock.crud.inventory import (
    coerce_quantity,
    count_low_stock,
    create_item,
    delete_item,
    get_item,
    get_item_by_sku,
    list_categories,
    list_items,
    normalize_amount,
    total_stock_value,
    update_item,
)
from paintstock.crud.projects import create_project
from paintstock.crud.transactions import checkout_items, receive_items
from paintstock.models import InventoryTransaction

# Ensure models are imported so metadata is populated
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


def _item(db, sku="SW-7006", **overrides):
    payload = {
        "name": "Extra White Eggshell",
        "sku": sku,
        "unit_cost": "42.50",
        "current_stock": 5,
        "minimum_stock": 2,
        "unit": "gallon",
        "supplier": "Sherwin-Williams",
        "category": "Paint",
    }
    payload.update(overrides)
    return create_item(db, payload)


def test_create_item_normalises_fields(db_session):
    item = _item(db_session, sku=" sw 7006 ", unit_cost="$1,042.50", description="  ")

    assert item.sku == "SW 7006"
    assert item.unit_cost == pytest.approx(1042.5)
    assert item.description is None
    assert item.created_at == item.updated_at
    assert item.created_at.endswith("Z")


def test_create_item_defaults_unit(db_session):
    item = _item(db_session, unit="")
    assert item.unit == "each"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "name is required"),
        ({"sku": "  "}, "sku is required"),
        ({"unit_cost": "abc"}, "unit_cost must be a number"),
        ({"unit_cost": -1}, "unit_cost must not be negative"),
        ({"current_stock": -3}, "current_stock must not be negative"),
        ({"minimum_stock": "two"}, "minimum_stock must be a whole number"),
    ],
)
def test_create_item_rejects_bad_input(db_session, overrides, message):
    with pytest.raises(ValueError, match=message):
        _item(db_session, **overrides)


def test_sku_must_be_unique(db_session):
    _item(db_session, sku="BM-OC17")
    with pytest.raises(ValueError, match="already in use"):
        _item(db_session, sku="bm-oc17", name="Another")


def test_update_item_is_partial(db_session):
    item = _item(db_session)
    other = _item(db_session, sku="FROG-TAPE", name="Frog Tape")

    updated = update_item(db_session, item, {"minimum_stock": "6", "supplier": ""})
    assert updated.minimum_stock == 6
    assert updated.supplier is None
    assert updated.name == "Extra White Eggshell"

    with pytest.raises(ValueError, match="already in use"):
        update_item(db_session, item, {"sku": other.sku})

    # Re-saving its own SKU is fine.
    assert update_item(db_session, item, {"sku": item.sku}).sku == "SW-7006"


def test_get_item_by_sku_accepts_scanned_upc(db_session):
    item = _item(db_session, sku="012345678905")
    assert item.sku == "0012345678905"
    assert get_item_by_sku(db_session, "12345678905") is None
    assert get_item_by_sku(db_session, "012345678905").id == item.id
    assert get_item_by_sku(db_session, "") is None


def test_list_items_filters(db_session):
    _item(db_session, sku="A1", name="Roller Cover", category="Sundries", current_stock=1, minimum_stock=4)
    _item(db_session, sku="A2", name="Primer", category="Paint", current_stock=10, minimum_stock=2)
    _item(db_session, sku="A3", name="Drop Cloth", category="Sundries", current_stock=3, minimum_stock=3)

    assert [i.name for i in list_items(db_session)] == ["Drop Cloth", "Primer", "Roller Cover"]
    assert [i.name for i in list_items(db_session, search="roll")] == ["Roller Cover"]
    assert [i.name for i in list_items(db_session, search="a2")] == ["Primer"]
    assert [i.name for i in list_items(db_session, category="Sundries")] == ["Drop Cloth", "Roller Cover"]
    assert [i.name for i in list_items(db_session, low_stock_only=True)] == ["Drop Cloth", "Roller Cover"]
    assert [i.name for i in list_items(db_session, limit=1, offset=1)] == ["Primer"]
    assert list_categories(db_session) == ["Paint", "Sundries"]
    assert count_low_stock(db_session) == 2


def test_total_stock_value(db_session):
    _item(db_session, sku="B1", unit_cost=10, current_stock=3)
    _item(db_session, sku="B2", unit_cost="2.25", current_stock=4)
    assert total_stock_value(db_session) == pytest.approx(39.0)


def test_delete_item_removes_history(db_session):
    item = _item(db_session, current_stock=0)
    project = create_project(db_session, {"name": "Maple St"})
    receive_items(db_session, [{"inventory_item_id": item.id, "quantity": 4}], created_by="sam")
    checkout_items(db_session, project.id, [{"inventory_item_id": item.id, "quantity": 1}], created_by="sam")

    item_id = item.id
    delete_item(db_session, item)

    assert get_item(db_session, item_id) is None
    assert db_session.execute(select(InventoryTransaction)).scalars().all() == []


@pytest.mark.parametrize(
    "raw, expected",
    [("$1,200.50", 1200.5), ("  ", None), ("n/a", None), (3, 3.0), (True, None)],
)
def test_normalize_amount(raw, expected):
    assert normalize_amount(raw) == expected


def test_coerce_quantity():
    assert coerce_quantity("") == 0
    assert coerce_quantity(" 7 ") == 7
    with pytest.raises(ValueError):
        coerce_quantity("1.5")
