import pytest
from fastapi.testclient import TestClient

from bus_schedule import database
from bus_schedule.config import settings
from bus_schedule.db_store import ScheduleStore
from bus_schedule.view_model import BusScheduleViewModel
from seed_db import build_schedule_database

# ids are assigned in this order: 1..6
SAMPLE_SCHEDULE = [
    ("Main St", 18000),  # 5:00 AM
    ("Park St", 16200),  # 4:30 AM
    ("Main St", 14400),  # 4:00 AM
    ("Elm St", 18000),   # 5:00 AM, same time as id 1
    ("main st", 15000),  # 4:10 AM
    ("Park St", 21600),  # 6:00 AM
]

# ids of SAMPLE_SCHEDULE, earliest first
SORTED_IDS = [3, 5, 2, 1, 4, 6]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def schedule_db(tmp_path, monkeypatch):
    path = tmp_path / "bus_schedule.db"
    build_schedule_database(path, SAMPLE_SCHEDULE)
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{path}")
    monkeypatch.setattr(settings, "database_asset", "")
    database.reset_engine()
    yield path
    database.reset_engine()


@pytest.fixture
def session_factory(schedule_db):
    return database.get_session_factory()


@pytest.fixture
def store(session_factory):
    db = session_factory()
    try:
        yield ScheduleStore(db)
    finally:
        db.close()


@pytest.fixture
def view_model(session_factory):
    return BusScheduleViewModel(session_factory, poll_seconds=0)


@pytest.fixture
def client(schedule_db):
    from bus_schedule.main import app

    with TestClient(app) as test_client:
        yield test_client
