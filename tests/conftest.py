"""Shared fixtures: an app on a temporary database and upload directory."""

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from mirabellier.auth.service import AuthService
from mirabellier.config import Settings
from mirabellier.core.database import Database, init_database
from mirabellier.main import create_app


CURATOR_USERNAME = "mira"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Isolated settings (no .env, no log files)."""
    return Settings(
        _env_file=None,
        environment="testing",
        database_path=str(tmp_path / "test.sqlite3"),
        upload_dir=str(tmp_path / "uploads"),
        log_to_file=False,
        log_requests=False,
        curator_usernames=[CURATOR_USERNAME],
    )


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """TestClient with the lifespan running."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def db() -> Iterator[Database]:
    """In-memory database with the full schema."""
    database = init_database(":memory:")
    yield database
    database.close()


@pytest.fixture
def auth_service(db: Database) -> AuthService:
    return AuthService(db, curator_usernames=[CURATOR_USERNAME])


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Register a user through the API and return ``{token, user, headers}``."""

    def _register(username: str, password: str = "secret-pass") -> dict[str, Any]:
        response = client.post(
            "/register", json={"username": username, "password": password}
        )
        assert response.status_code == 201, response.text
        data = response.json()
        data["headers"] = {"Authorization": f"Bearer {data['token']}"}
        return data

    return _register
