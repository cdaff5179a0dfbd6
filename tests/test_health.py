"""Tests for health endpoint."""

from __future__ import annotations

from collabhub import __version__


def test_health_returns_200(client):
    """Health endpoint returns 200 when the database is reachable."""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_reports_database(client):
    data = client.get("/health").json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"
    assert data["version"] == __version__


def test_health_unhealthy_when_database_down(client, monkeypatch):
    import collabhub.main

    class _Broken:
        def connect(self):
            raise RuntimeError("connection refused")

    monkeypatch.setattr(collabhub.main, "engine", _Broken())
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["database"] == "disconnected"
