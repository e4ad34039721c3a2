from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gaming_desk.api.routes import router
from gaming_desk.application.archival import ArchivalSweep
from gaming_desk.application.live_board import LiveBoard
from gaming_desk.application.usecases import BuildAnalytics, EstimateTotal, ExportSessions
from gaming_desk.domain.catalog import CATALOG
from gaming_desk.domain.entities import SessionRecord
from gaming_desk.infrastructure.excel_export import XLSX_MIME, ExcelExporter

from conftest import StubExporter

IST = ZoneInfo("Asia/Kolkata")


@pytest.fixture
def client(store, repo, clock, tmp_path):
    app = FastAPI()
    app.include_router(router)
    app.state.session_store = store
    app.state.catalog = CATALOG
    app.state.live_board = LiveBoard(store, timedelta(minutes=5), clock=clock)
    app.state.estimate_uc = EstimateTotal(CATALOG, 60)
    app.state.analytics_uc = BuildAnalytics(IST, clock)
    app.state.export_uc = ExportSessions(ExcelExporter(str(tmp_path), IST), clock)
    app.state.archival = ArchivalSweep(repo, StubExporter(), clock=clock)
    return TestClient(app)


def _create(client, **kw):
    body = {"customer_name": "Arjun", "phone_number": "9876543210", "duration_hours": 1, "party_size": 2}
    body.update(kw)
    return client.post("/sessions", json=body)


def test_catalog_groups(client):
    body = client.get("/catalog").json()
    assert set(body) == {"munchies", "drinks"}
    assert {"id": "water", "name": "Water", "price": 10} in body["drinks"]["items"]


def test_estimate_is_lenient(client):
    r = client.post("/estimate", json={"duration_hours": "2", "party_size": "", "snacks": {"water": 2, "nope": 1}})
    assert r.status_code == 200
    assert r.json() == {"seat_charge": 0, "snacks_total": 20, "subtotal": 20, "rate": 60}


def test_create_and_fetch(client, repo):
    r = _create(client, snacks={"chips_15": 1}, payment_method="online")
    assert r.status_code == 201
    sid = r.json()["id"]

    body = client.get(f"/sessions/{sid}").json()
    assert body["subtotal"] == 2 * 60 + 15
    assert body["phone_number"] == "+91 9876543210"
    assert body["payment_method"] == "online"
    assert body["phase"] == "active"
    assert body["status_text"] == "1h 0m remaining"
    assert repo.get(sid) is not None


def test_create_validation_error_names_field(client, repo):
    r = _create(client, phone_number="12345")
    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "phone_number"
    assert repo.insert_calls == 0


def test_create_store_offline(client, repo):
    repo.fail_writes = True
    r = _create(client)
    assert r.status_code == 503
    assert "Check your internet connection" in r.json()["detail"]


def test_update_and_not_found(client):
    sid = _create(client).json()["id"]
    r = client.patch(
        f"/sessions/{sid}",
        json={
            "duration_hours": 2,
            "party_size": 1,
            "snacks": [{"item_id": "water", "name": "Water", "quantity": 3, "unit_price": 10}],
        },
    )
    assert r.status_code == 200
    assert r.json()["subtotal"] == 120 + 30
    assert r.json()["renewed"] is True

    assert client.patch("/sessions/nope", json={"duration_hours": 1}).status_code == 404
    assert client.get("/sessions/nope").status_code == 404


def test_list_views_follow_the_clock(client, clock):
    _create(client, customer_name="A")
    clock.advance(minutes=30)
    _create(client, customer_name="B", duration_hours=2)
    clock.advance(minutes=45)

    ongoing = client.get("/sessions").json()
    completed = client.get("/sessions", params={"view": "completed"}).json()
    everything = client.get("/sessions", params={"view": "all"}).json()

    assert [s["customer_name"] for s in ongoing["sessions"]] == ["B"]
    assert ongoing["active_count"] == 1
    assert [s["customer_name"] for s in completed["sessions"]] == ["A"]
    assert completed["sessions"][0]["status_text"] == "Exceeded by 15m"
    assert len(everything["sessions"]) == 2
    assert client.get("/sessions", params={"view": "bogus"}).status_code == 400


def test_analytics(client):
    _create(client, payment_method="online")
    _create(client)
    body = client.get("/analytics").json()
    assert body["stats"]["total_customers"] == 2
    assert body["stats"]["total_online"] == 120
    assert body["stats"]["total_cash"] == 120
    assert body["active_now"] == 2
    assert client.get("/analytics", params={"scope": "week"}).status_code == 400


def test_export_download(client):
    _create(client)
    r = client.get("/export")
    assert r.status_code == 200
    assert r.headers["content-type"] == XLSX_MIME
    assert 'filename="SB_Gaming_Sessions_2026-03-14.xlsx"' in r.headers["content-disposition"]
    assert r.content[:2] == b"PK"


def test_archive_sweep(client, repo):
    repo.insert(
        SessionRecord(
            id="",
            customer_name="Old",
            phone_number="+91 9876543210",
            party_size=1,
            duration_hours=1,
            snack_orders=(),
            subtotal=50,
            started_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
    )
    r = client.post("/archive/sweep", json={"retention_months": 6})
    assert r.json() == {"status": "success", "exported_count": 1, "artifact_name": "archive_2026-03-14.xlsx"}

    r = client.post("/archive/sweep", json={})
    assert r.json()["status"] == "no_data"
    assert client.post("/archive/sweep", json={"retention_months": 0}).status_code == 422


def test_snack_plus_minus(client, repo):
    sid = _create(client, party_size=1).json()["id"]

    r = client.post(f"/sessions/{sid}/snacks", json={"item_id": "chips_15", "delta": 1})
    assert r.status_code == 200
    r = client.post(f"/sessions/{sid}/snacks", json={"item_id": "chips_15", "delta": 1})
    assert r.json()["subtotal"] == 60 + 30
    assert r.json()["snack_orders"][0]["quantity"] == 2

    r = client.post(f"/sessions/{sid}/snacks", json={"item_id": "chips_15", "delta": -2})
    assert r.json()["snack_orders"] == []
    assert repo.get(sid).subtotal == 60

    r = client.post(f"/sessions/{sid}/snacks", json={"item_id": "caviar", "delta": 1})
    assert r.status_code == 400
    assert r.json()["detail"]["field"] == "item_id"
    assert client.post("/sessions/nope/snacks", json={"item_id": "water", "delta": 1}).status_code == 404


def test_create_rejects_off_step_and_huge_durations(client, repo):
    for hours in (0.3, 1e9):
        r = _create(client, duration_hours=hours)
        assert r.status_code == 400
        assert r.json()["detail"]["field"] == "duration_hours"
    assert repo.insert_calls == 0
