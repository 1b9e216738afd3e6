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
from paintstock.crud.inventory import create_item
from paintstock.crud.projects import (
    create_project,
    delete_project,
    get_project,
    list_active_projects,
    list_projects,
    project_detail,
    set_status,
    status_counts,
    update_project,
)
from paintstock.crud.tools import create_tool, move_tool
from paintstock.crud.transactions import checkout_items
from paintstock.models import InventoryTransaction, ToolMovement

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
def paint(db_session):
    return create_item(db_session, {"name": "Satin Gray", "sku": "SG-1", "unit_cost": "31.25", "current_stock": 20})


def test_create_project_validation(db_session):
    project = create_project(
        db_session,
        {"name": " Birch Hall ", "start_date": "2025-03-01", "end_date": "2025-03-20T00:00:00Z"},
    )
    assert project.name == "Birch Hall"
    assert project.status == "active"
    assert project.end_date == "2025-03-20"
    assert project.total_expenses == 0.0

    with pytest.raises(ValueError, match="name is required"):
        create_project(db_session, {"name": ""})
    with pytest.raises(ValueError, match="status must be one of"):
        create_project(db_session, {"name": "X", "status": "paused"})
    with pytest.raises(ValueError, match="before start_date"):
        create_project(db_session, {"name": "X", "start_date": "2025-05-02", "end_date": "2025-05-01"})
    with pytest.raises(ValueError, match="invalid date"):
        create_project(db_session, {"name": "X", "start_date": "soon"})


def test_project_names_are_unique_locations(db_session):
    smith = create_project(db_session, {"name": "Smith House"})
    other = create_project(db_session, {"name": "Jones House"})

    with pytest.raises(ValueError, match="already in use"):
        create_project(db_session, {"name": " Smith House "})
    with pytest.raises(ValueError, match="reserved for the shop"):
        create_project(db_session, {"name": "Shop"})
    with pytest.raises(ValueError, match="already in use"):
        update_project(db_session, other, {"name": "Smith House"})
    with pytest.raises(ValueError, match="reserved for the shop"):
        update_project(db_session, other, {"name": "shop"})

    # Keeping its own name is not a clash.
    assert update_project(db_session, smith, {"name": "Smith House", "status": "completed"}).status == "completed"
    assert [p.name for p in list_projects(db_session, status="all")].count("Smith House") == 1


def test_totals_follow_checkouts(db_session, paint):
    first = create_project(db_session, {"name": "Birch Hall"})
    second = create_project(db_session, {"name": "Cherry Loft"})
    checkout_items(db_session, first.id, [{"inventory_item_id": paint.id, "quantity": 2}], created_by="lee")
    checkout_items(db_session, first.id, [{"inventory_item_id": paint.id, "quantity": 1}], created_by="lee")

    assert get_project(db_session, first.id).total_expenses == pytest.approx(93.75)
    totals = {p.name: p.total_expenses for p in list_projects(db_session)}
    assert totals == {"Birch Hall": pytest.approx(93.75), "Cherry Loft": 0.0}
    assert get_project(db_session, second.id).total_expenses == 0.0


def test_status_filters_and_counts(db_session):
    create_project(db_session, {"name": "A"})
    b = create_project(db_session, {"name": "B"})
    create_project(db_session, {"name": "C", "status": "archived"})
    set_status(db_session, b, "completed")

    assert [p.name for p in list_active_projects(db_session)] == ["A"]
    assert [p.name for p in list_projects(db_session, status="completed")] == ["B"]
    assert len(list_projects(db_session, status="all")) == 3
    assert status_counts(db_session) == {"active": 1, "completed": 1, "archived": 1, "all": 3}


def test_update_project_keeps_dates_consistent(db_session):
    project = create_project(db_session, {"name": "Dogwood", "start_date": "2025-06-01"})

    updated = update_project(db_session, project, {"end_date": "2025-06-30", "description": " exterior "})
    assert updated.end_date == "2025-06-30"
    assert updated.description == "exterior"

    with pytest.raises(ValueError, match="before start_date"):
        update_project(db_session, project, {"start_date": "2025-07-15"})


def test_project_detail(db_session, paint):
    project = create_project(db_session, {"name": "Elm St"})
    sprayer = create_tool(db_session, {"name": "Sprayer"})
    create_tool(db_session, {"name": "Ladder"})
    move_tool(db_session, sprayer, "Elm St", moved_by="lee")
    checkout_items(db_session, project.id, [{"inventory_item_id": paint.id, "quantity": 4}], created_by="lee")

    detail = project_detail(db_session, project)

    assert [t.name for t in detail["tools"]] == ["Sprayer"]
    assert len(detail["movements"]) == 1
    assert detail["movements"][0].movement_type == "checkout"
    assert len(detail["expenses"]) == 1
    assert detail["total_expenses"] == pytest.approx(125.0)
    assert detail["project"].total_expenses == pytest.approx(125.0)


def test_delete_project_keeps_history_unlinked(db_session, paint):
    project = create_project(db_session, {"name": "Elm St"})
    sprayer = create_tool(db_session, {"name": "Sprayer"})
    move_tool(db_session, sprayer, "Elm St", moved_by="lee")
    checkout_items(db_session, project.id, [{"inventory_item_id": paint.id, "quantity": 1}], created_by="lee")

    project_id = project.id
    delete_project(db_session, project)

    assert get_project(db_session, project_id) is None
    tx = db_session.execute(select(InventoryTransaction)).unique().scalars().one()
    assert tx.project_id is None
    assert tx.total_cost == pytest.approx(31.25)
    move = db_session.execute(select(ToolMovement)).unique().scalars().one()
    assert move.project_id is None
    assert move.to_location == "Elm St"
