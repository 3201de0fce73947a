import sqlite3

from fastapi.testclient import TestClient

from main import app


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_validation_error_is_400(client):
    response = client.get("/api/users/not-a-number")
    assert response.status_code == 400
    assert "error" in response.json()


def test_unexpected_errors_are_hidden(app_env, monkeypatch):
    def broken(conn):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr("routes.leaderboard._all_time", broken)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/leaderboard")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
