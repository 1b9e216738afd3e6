import os
import sys
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select, update
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from paintstock.db.session import Base
from paintstock.core.errors import InactiveProjectError, InsufficientStockError, NotFoundError
from paintstock.crud.inventory import create_item, get_item
from paintstock.crud.projects import create_project
from paintstock.crud.transactions import (
    checkout_items,
    decrease_stock,
    list_batches,
    list_transactions,
    receive_items,
    void_batch,
)
from paintstock.models import InventoryTransaction

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


@pytest.fixture()
def stocked(db_session):
    paint = create_item(
        db_session,
        {"name": "Eggshell White", "sku": "SW-7006", "unit_cost": 40, "current_stock": 10, "minimum_stock": 2},
    )
    tape = create_item(
        db_session,
        {"name": "Painter's Tape", "sku": "TAPE-2IN", "unit_cost": "6.49", "current_stock": 3, "minimum_stock": 5},
    )
    project = create_project(db_session, {"name": "Oak Ave Repaint"})
    return paint, tape, project


def _rows(db):
    return db.execute(select(InventoryTransaction)).scalars().all()


def test_receive_adds_stock_and_adopts_cost(db_session, stocked):
    paint, tape, _ = stocked

    rows = receive_items(
        db_session,
        [
            {"inventory_item_id": paint.id, "quantity": 4, "unit_cost": "38.00"},
            {"inventory_item_id": tape.id, "quantity": "12"},
        ],
        created_by="dana",
        notes="  PO 1182 ",
    )

    assert len(rows) == 2
    assert {r.transaction_type for r in rows} == {"restock"}
    assert len({r.batch_id for r in rows}) == 1
    assert rows[0].notes == "PO 1182"
    assert rows[0].total_cost == pytest.approx(152.0)
    assert rows[1].unit_cost == pytest.approx(6.49)
    assert rows[1].total_cost == pytest.approx(77.88)

    assert get_item(db_session, paint.id).current_stock == 14
    assert get_item(db_session, paint.id).unit_cost == pytest.approx(38.0)
    assert get_item(db_session, tape.id).current_stock == 15


def test_repeated_lines_are_merged(db_session, stocked):
    paint, _, project = stocked

    rows = receive_items(
        db_session,
        [
            {"inventory_item_id": paint.id, "quantity": 1, "unit_cost": 39},
            {"inventory_item_id": paint.id, "quantity": 2, "unit_cost": 41},
        ],
        created_by="dana",
    )
    assert len(rows) == 1
    assert rows[0].quantity == 3
    assert rows[0].unit_cost == pytest.approx(41.0)

    rows = checkout_items(
        db_session,
        project.id,
        [{"inventory_item_id": paint.id, "quantity": 2}, {"inventory_item_id": paint.id, "quantity": 3}],
        created_by="dana",
    )
    assert len(rows) == 1
    assert rows[0].quantity == 5
    assert get_item(db_session, paint.id).current_stock == 8


def test_checkout_charges_project(db_session, stocked):
    paint, tape, project = stocked

    rows = checkout_items(
        db_session,
        project.id,
        [{"inventory_item_id": paint.id, "quantity": 3}, {"inventory_item_id": tape.id, "quantity": 3}],
        created_by="lee",
    )

    assert {r.transaction_type for r in rows} == {"checkout"}
    assert {r.project_id for r in rows} == {project.id}
    assert rows[0].total_cost == pytest.approx(120.0)
    assert rows[1].total_cost == pytest.approx(19.47)
    assert rows[0].project_name == "Oak Ave Repaint"
    assert get_item(db_session, paint.id).current_stock == 7
    assert get_item(db_session, tape.id).current_stock == 0


def test_checkout_over_stock_rolls_back_whole_cart(db_session, stocked):
    paint, tape, project = stocked

    with pytest.raises(InsufficientStockError) as excinfo:
        checkout_items(
            db_session,
            project.id,
            [{"inventory_item_id": paint.id, "quantity": 2}, {"inventory_item_id": tape.id, "quantity": 4}],
            created_by="lee",
        )

    assert excinfo.value.available == 3
    assert excinfo.value.requested == 4
    assert get_item(db_session, paint.id).current_stock == 10
    assert get_item(db_session, tape.id).current_stock == 3
    assert _rows(db_session) == []


def test_checkout_requires_active_project(db_session, stocked):
    paint, _, _ = stocked
    done = create_project(db_session, {"name": "Finished Job", "status": "completed"})
    line = [{"inventory_item_id": paint.id, "quantity": 1}]

    with pytest.raises(ValueError, match="select a project"):
        checkout_items(db_session, None, line, created_by="lee")
    with pytest.raises(NotFoundError):
        checkout_items(db_session, 9999, line, created_by="lee")
    with pytest.raises(InactiveProjectError):
        checkout_items(db_session, done.id, line, created_by="lee")
    assert get_item(db_session, paint.id).current_stock == 10


@pytest.mark.parametrize(
    "lines, message",
    [
        ([], "add at least one item"),
        ([{"inventory_item_id": None, "quantity": 1}], "inventory_item_id is required"),
        ([{"inventory_item_id": 1, "quantity": 0}], "greater than zero"),
        ([{"inventory_item_id": 1, "quantity": 1, "unit_cost": "free"}], "unit_cost must be a number"),
    ],
)
def test_receive_rejects_bad_lines(db_session, stocked, lines, message):
    with pytest.raises(ValueError, match=message):
        receive_items(db_session, lines, created_by="dana")


def test_receive_unknown_item_leaves_nothing_behind(db_session, stocked):
    paint, _, _ = stocked
    with pytest.raises(NotFoundError):
        receive_items(
            db_session,
            [{"inventory_item_id": paint.id, "quantity": 5}, {"inventory_item_id": 404, "quantity": 1}],
            created_by="dana",
        )
    assert get_item(db_session, paint.id).current_stock == 10
    assert _rows(db_session) == []


def test_decrease_stock_is_guarded(db_session, stocked):
    _, tape, _ = stocked

    assert decrease_stock(db_session, tape.id, 5) is False
    assert decrease_stock(db_session, tape.id, 3) is True
    db_session.commit()
    assert get_item(db_session, tape.id).current_stock == 0
    with pytest.raises(ValueError):
        decrease_stock(db_session, tape.id, 0)


def test_void_batch_reverses_stock(db_session, stocked):
    paint, tape, project = stocked
    received = receive_items(db_session, [{"inventory_item_id": tape.id, "quantity": 5}], created_by="dana")
    used = checkout_items(db_session, project.id, [{"inventory_item_id": paint.id, "quantity": 4}], created_by="lee")

    assert void_batch(db_session, used[0].batch_id) == 1
    assert get_item(db_session, paint.id).current_stock == 10

    checkout_items(db_session, project.id, [{"inventory_item_id": tape.id, "quantity": 7}], created_by="lee")
    # Only 1 left; voiding the 5-unit delivery floors at zero.
    assert void_batch(db_session, received[0].batch_id) == 1
    assert get_item(db_session, tape.id).current_stock == 0

    with pytest.raises(NotFoundError):
        void_batch(db_session, "missing")


def test_void_row_logged_without_batch(db_session, stocked):
    paint, tape, project = stocked
    received = receive_items(db_session, [{"inventory_item_id": tape.id, "quantity": 5}], created_by="dana")
    row_id = received[0].id
    db_session.execute(update(InventoryTransaction).where(InventoryTransaction.id == row_id).values(batch_id=None))
    db_session.commit()

    listed = [b["batch_id"] for b in list_batches(db_session)]
    assert listed == [f"tx-{row_id}"]

    assert void_batch(db_session, f"tx-{row_id}") == 1
    assert get_item(db_session, tape.id).current_stock == 3
    assert list_batches(db_session) == []
    with pytest.raises(NotFoundError):
        void_batch(db_session, f"tx-{row_id}")


def test_list_transactions_and_batches(db_session, stocked):
    paint, tape, project = stocked
    receive_items(db_session, [{"inventory_item_id": paint.id, "quantity": 2}], created_by="dana")
    checkout_items(
        db_session,
        project.id,
        [{"inventory_item_id": paint.id, "quantity": 1}, {"inventory_item_id": tape.id, "quantity": 2}],
        created_by="lee",
    )

    assert len(list_transactions(db_session)) == 3
    assert len(list_transactions(db_session, transaction_type="checkout")) == 2
    assert len(list_transactions(db_session, item_id=tape.id)) == 1
    assert len(list_transactions(db_session, project_id=project.id)) == 2
    assert list_transactions(db_session, start=date(2000, 1, 1), end=date(2000, 1, 2)) == []
    with pytest.raises(ValueError):
        list_transactions(db_session, transaction_type="sale")

    batches = list_batches(db_session, transaction_type="checkout")
    assert len(batches) == 1
    assert batches[0]["line_count"] == 2
    assert batches[0]["total_quantity"] == 3
    assert batches[0]["total_cost"] == pytest.approx(52.98)
    assert batches[0]["project_name"] == "Oak Ave Repaint"
