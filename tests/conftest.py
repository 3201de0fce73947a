from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import config
from db import database
from main import app
from utils.auth import hash_password
from utils.bible import clear_verse_cache

ENV_OVERRIDES = (
    "WORDPOINTE_SESSION_DAYS",
    "WORDPOINTE_COOKIE_SECURE",
    "WORDPOINTE_LOG_LEVEL",
    "BIBLE_API_KEY",
    "BIBLE_API_TIMEOUT",
    "BIBLE_CACHE_DAYS",
    "BIBLE_FALLBACK_URL",
    "API_BIBLE_URL",
)


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[session]",
                "days = 7",
                "cookie_secure = false",
                "",
                "[bible]",
                "api_key = \"\"",
                "api_url = \"https://api.scripture.test/v1\"",
                "fallback_url = \"https://bible-api.test\"",
                "timeout = 5",
                "cache_days = 7",
                "auto_create_version = \"NIV\"",
                "",
                "[logging]",
                "level = \"INFO\"",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    config_dir = tmp_path / ".wordpointe"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "wordpointe.db")
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)

    database.init_db()
    clear_verse_cache()
    yield config_dir
    clear_verse_cache()


@pytest.fixture
def client(app_env):
    return TestClient(app)


@pytest.fixture
def make_user(app_env):
    def _make_user(name, role="student", password=None):
        with database.get_conn() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (name, role, is_leader, password_hash)
                VALUES (?, ?, ?, ?)
                RETURNING *
                """,
                (name, role, int(role != "student"), hash_password(password) if password else None),
            )
            row = dict(cursor.fetchone())
            conn.commit()
        return row

    return _make_user


@pytest.fixture
def make_item(app_env):
    def _make_item(reference, points_first=10, points_repeat=5, active=True, item_type="verse"):
        with database.get_conn() as conn:
            cursor = conn.execute(
                """
                INSERT INTO memory_items (type, reference, text, points_first, points_repeat, active)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING *
                """,
                (item_type, reference, f"Text of {reference}", points_first, points_repeat, int(active)),
            )
            row = dict(cursor.fetchone())
            conn.commit()
        return row

    return _make_item


@pytest.fixture
def leader_client(client, make_user):
    make_user("Leader Lu", role="leader", password="leader-pass")
    response = client.post("/api/auth/login", json={"name": "Leader Lu", "password": "leader-pass"})
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(client, make_user):
    make_user("Admin Ann", role="admin", password="admin-pass")
    response = client.post("/api/auth/login", json={"name": "Admin Ann", "password": "admin-pass"})
    assert response.status_code == 200
    return client
