import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from starlette.websockets import WebSocketDisconnect

from bus_schedule import database
from bus_schedule.config import settings
from bus_schedule.view_model import BusScheduleViewModel
from bus_schedule.websocket_manager import feed_manager

from conftest import SORTED_IDS


def test_health(client):
    assert client.get("/").json() == {"status": "ok"}


def test_full_schedule(client):
    response = client.get("/schedule")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Full Schedule"
    assert body["stop_name"] is None
    assert [row["id"] for row in body["rows"]] == SORTED_IDS
    assert body["rows"][0]["display_time"] == "4:00 AM"


def test_stop_schedule(client):
    response = client.get("/schedule/stops/Main St")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Main St"
    assert [row["id"] for row in body["rows"]] == [3, 1]
    assert [row["display_time"] for row in body["rows"]] == ["4:00 AM", "5:00 AM"]


def test_unknown_stop_has_no_rows(client):
    response = client.get("/schedule/stops/Nowhere Lane")

    assert response.status_code == 200
    assert response.json()["rows"] == []


def test_stop_names(client):
    assert client.get("/schedule/stops").json() == ["Elm St", "Main St", "Park St", "main st"]


def test_store_failure_returns_503(client, tmp_path, monkeypatch):
    database.reset_engine()
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path / 'gone.db'}")
    monkeypatch.setattr(settings, "database_asset", "")

    response = client.get("/schedule")

    assert response.status_code == 503
    assert response.json() == {"detail": "Schedule store unavailable"}


def test_startup_fails_without_store(tmp_path, monkeypatch):
    from bus_schedule.main import app

    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path / 'gone.db'}")
    monkeypatch.setattr(settings, "database_asset", "")
    database.reset_engine()
    try:
        with pytest.raises(database.StoreUnavailableError):
            with TestClient(app):
                pass
    finally:
        database.reset_engine()


def test_feed_sends_full_schedule(client):
    with client.websocket_connect("/schedule/ws") as ws:
        message = ws.receive_json()

        assert message["type"] == "schedule_update"
        assert message["screen"] == "Full Schedule"
        assert message["path"] == "/schedule"
        assert [row["id"] for row in message["rows"]] == SORTED_IDS
        assert [u["kind"] for u in message["updates"]] == ["insert"] * len(SORTED_IDS)
        assert feed_manager.get_connection_count("/schedule") == 1


def test_feed_tap_navigates_to_stop(client):
    with client.websocket_connect("/schedule/ws") as ws:
        rows = ws.receive_json()["rows"]
        position = next(i for i, row in enumerate(rows) if row["stop_name"] == "Main St")

        ws.send_text(json.dumps({"type": "tap", "position": position}))

        navigate = ws.receive_json()
        assert navigate == {
            "type": "navigate",
            "screen": "Main St",
            "path": "/schedule/stops/Main%20St",
            "stop_name": "Main St",
        }
        update = ws.receive_json()
        assert update["type"] == "schedule_update"
        assert update["screen"] == "Main St"
        assert [row["id"] for row in update["rows"]] == [3, 1]

        ws.send_text(json.dumps({"type": "back"}))

        assert ws.receive_json()["path"] == "/schedule"
        update = ws.receive_json()
        assert [row["id"] for row in update["rows"]] == SORTED_IDS


def test_feed_can_start_on_stop_screen(client):
    with client.websocket_connect("/schedule/ws?stop_name=Park St") as ws:
        message = ws.receive_json()

        assert message["screen"] == "Park St"
        assert [row["id"] for row in message["rows"]] == [2, 6]


def test_feed_ping_and_bad_messages(client):
    with client.websocket_connect("/schedule/ws") as ws:
        ws.receive_json()

        ws.send_text("ping")
        assert ws.receive_text() == "pong"

        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        ws.send_text(json.dumps({"type": "tap", "position": 99}))
        assert ws.receive_json()["type"] == "error"

        ws.send_text(json.dumps({"type": "tap"}))
        assert ws.receive_json()["type"] == "error"


def test_feed_errors_have_string_detail(client):
    with client.websocket_connect("/schedule/ws") as ws:
        ws.receive_json()

        for bad in ("not json", json.dumps({"type": "jump"}), json.dumps({"type": "tap", "position": 99}), json.dumps({"type": "tap"})):
            ws.send_text(bad)
            message = ws.receive_json()
            assert message["type"] == "error"
            assert isinstance(message["detail"], str)


def test_feed_closes_when_store_fails_while_streaming(client, monkeypatch):
    def broken_query(self):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(BusScheduleViewModel, "full_schedule", broken_query)

    with client.websocket_connect("/schedule/ws") as ws:
        assert ws.receive_json() == {"type": "error", "detail": "Schedule store unavailable"}
        with pytest.raises(WebSocketDisconnect) as excinfo:
            ws.receive_json()
        assert excinfo.value.code == status.WS_1011_INTERNAL_ERROR


def test_feed_closes_when_store_is_gone_at_connect(client, tmp_path, monkeypatch):
    database.reset_engine()
    monkeypatch.setattr(settings, "database_url", f"sqlite:///{tmp_path / 'gone.db'}")
    monkeypatch.setattr(settings, "database_asset", "")

    with client.websocket_connect("/schedule/ws") as ws:
        assert ws.receive_json() == {"type": "error", "detail": "Schedule store unavailable"}
        with pytest.raises(WebSocketDisconnect) as excinfo:
            ws.receive_json()
        assert excinfo.value.code == status.WS_1011_INTERNAL_ERROR
    assert feed_manager.get_connection_count("/schedule") == 0
