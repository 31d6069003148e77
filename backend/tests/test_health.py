from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from campustrack.api.routes import health


def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"


def test_ready_reports_schema_status(client, engine, monkeypatch):
    monkeypatch.setattr(health, "engine", engine)

    ready = client.get("/api/health/ready")

    assert ready.status_code == 200
    payload = ready.json()
    assert payload["status"] == "ok"
    assert payload["database"]["ok"] is True
    assert payload["database"]["missing_tables"] == []


def test_ready_is_degraded_without_tables(client, monkeypatch):
    empty_engine = create_engine("sqlite+pysqlite://", poolclass=StaticPool)
    monkeypatch.setattr(health, "engine", empty_engine)

    ready = client.get("/api/health/ready")

    assert ready.status_code == 503
    payload = ready.json()
    assert payload["status"] == "degraded"
    assert payload["database"]["schema_ok"] is False
    assert "attendance_records" in payload["database"]["missing_tables"]
