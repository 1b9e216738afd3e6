import csv
import io
import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from paintstock.db.session import Base
from paintstock.crud.inventory import create_item
from paintstock.crud.projects import create_project
from paintstock.crud.tools import create_tool
from paintstock.crud.transactions import checkout_items, receive_items
from paintstock.models import InventoryTransaction
from paintstock.services.exports import report_csv, report_filename
from paintstock.services.reporting import (
    build_report,
    dashboard_stats,
    monthly_usage,
    most_used_items,
    period_summary,
    project_expenses,
    resolve_range,
)
from paintstock.services.timecalc import months_back

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


def _dated(db, rows, when):
    ids = [row.id for row in rows]
    db.execute(update(InventoryTransaction).where(InventoryTransaction.id.in_(ids)).values(created_at=when))
    db.commit()


@pytest.fixture()
def history(db_session):
    paint = create_item(db_session, {"name": "Flat Ceiling White", "sku": "FCW", "unit_cost": 25, "current_stock": 50})
    tape = create_item(db_session, {"name": "Blue Tape", "sku": "BT", "unit_cost": "5.50", "current_stock": 50})
    roller = create_item(db_session, {"name": "Roller Cover", "sku": "RC", "unit_cost": 4, "current_stock": 50})
    north = create_project(db_session, {"name": "North Wing"})
    south = create_project(db_session, {"name": "South Wing"})

    _dated(
        db_session,
        checkout_items(
            db_session,
            north.id,
            [{"inventory_item_id": paint.id, "quantity": 2}, {"inventory_item_id": tape.id, "quantity": 4}],
            created_by="lee",
        ),
        "2025-01-15T14:00:00Z",
    )
    _dated(
        db_session,
        checkout_items(db_session, south.id, [{"inventory_item_id": paint.id, "quantity": 3}], created_by="lee"),
        "2025-02-03T09:30:00Z",
    )
    _dated(
        db_session,
        checkout_items(db_session, south.id, [{"inventory_item_id": roller.id, "quantity": 5}], created_by="lee"),
        "2025-02-28T23:59:59Z",
    )
    _dated(
        db_session,
        receive_items(db_session, [{"inventory_item_id": tape.id, "quantity": 10, "unit_cost": 5}], created_by="dana"),
        "2025-02-10T12:00:00Z",
    )
    # Outside the window.
    _dated(
        db_session,
        checkout_items(db_session, north.id, [{"inventory_item_id": roller.id, "quantity": 9}], created_by="lee"),
        "2025-03-01T00:00:00Z",
    )
    return paint, tape, roller, north, south


START = date(2025, 1, 1)
END = date(2025, 2, 28)


def test_most_used_items_grouped_and_ranked(db_session, history):
    rows = most_used_items(db_session, START, END)

    assert [r["item_sku"] for r in rows] == ["FCW", "BT", "RC"]
    assert rows[0] == {
        "item_name": "Flat Ceiling White",
        "item_sku": "FCW",
        "total_quantity": 5,
        "transaction_count": 2,
        "total_cost": 125.0,
    }
    assert rows[1]["total_cost"] == 22.0
    assert len(most_used_items(db_session, START, END, limit=1)) == 1


def test_project_expenses(db_session, history):
    rows = project_expenses(db_session, START, END)

    assert [(r["project_name"], r["total_cost"], r["item_count"]) for r in rows] == [
        ("South Wing", 95.0, 2),
        ("North Wing", 72.0, 2),
    ]


def test_monthly_usage_in_month_order(db_session, history):
    rows = monthly_usage(db_session, START, END)
    assert rows == [
        {"month": "2025-01", "transaction_count": 2, "total_cost": 72.0},
        {"month": "2025-02", "transaction_count": 2, "total_cost": 95.0},
    ]


def test_period_summary(db_session, history):
    summary = period_summary(db_session, START, END)

    assert summary["received_cost"] == 50.0
    assert summary["checkout_cost"] == 167.0
    assert summary["net_cost"] == -117.0
    assert summary["units_received"] == 10
    assert summary["units_checked_out"] == 14
    assert summary["net_units"] == -4
    assert summary["distinct_items"] == 3


def test_build_report_bundles_sections(db_session, history):
    report = build_report(db_session, START, END)
    assert report["start"] == "2025-01-01"
    assert report["end"] == "2025-02-28"
    assert len(report["most_used_items"]) == 3
    assert report["summary"]["checkout_cost"] == 167.0


def test_resolve_range_defaults_and_validation():
    today = datetime.now(timezone.utc).date()
    assert resolve_range() == (months_back(today, 3), today)
    assert resolve_range(start=date(2025, 1, 1)) == (date(2025, 1, 1), today)
    with pytest.raises(ValueError):
        resolve_range(date(2025, 5, 2), date(2025, 5, 1))


def test_months_back_crosses_year():
    assert months_back(date(2025, 2, 14), 3) == date(2024, 11, 1)


def test_dashboard_stats(db_session, history):
    create_tool(db_session, {"name": "Sprayer"})
    stats = dashboard_stats(db_session)

    assert stats["total_items"] == 3
    assert stats["total_tools"] == 1
    assert stats["active_projects"] == 2
    # 45 paint at 25, 56 tape at 5, 36 rollers at 4
    assert stats["total_stock_value"] == 1549.0
    assert stats["low_stock_items"] == 0


def test_report_csv_formats_costs(db_session, history):
    rows = most_used_items(db_session, START, END)
    content = report_csv("items", rows)
    parsed = list(csv.reader(io.StringIO(content)))

    assert parsed[0] == ["Item Name", "SKU", "Total Quantity Used", "Total Cost", "Number of Transactions"]
    assert parsed[1] == ["Flat Ceiling White", "FCW", "5", "$125.00", "2"]
    assert content.startswith('"Item Name"')


def test_report_filenames():
    assert report_filename("projects", START, END) == "project-expenses-2025-01-01-to-2025-02-28.csv"
    assert report_filename("monthly", START, END) == "monthly-usage-2025-01-01-to-2025-02-28.csv"
    with pytest.raises(ValueError):
        report_filename("tools", START, END)
