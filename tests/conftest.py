"""
Shared fixtures: settings pointing at a temporary SQLite file, an app
built from them, an in-process client and a ready TODO service.
"""
import pytest
from fastapi.testclient import TestClient

from todo_api.app.core.config import Settings
from todo_api.app.core.db import init_db
from todo_api.app.main import create_app
from todo_api.app.services.todo_service import TODOService

USER_ID = "alice"
PASSWORD = "s3cret"


@pytest.fixture
def settings(tmp_path):
    """Settings for tests: temp database, no health delay, short drain window."""
    return Settings(
        db_path=str(tmp_path / "todo.db"),
        basic_auth_user_id=USER_ID,
        basic_auth_password=PASSWORD,
        time_zone="Asia/Tokyo",
        healthz_delay=0.0,
        shutdown_timeout=2.0,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client with the app lifespan (migrations) already run."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth():
    return (USER_ID, PASSWORD)


@pytest.fixture
def service(settings):
    init_db(settings.db_path)
    return TODOService(settings.db_path, tz=settings.tz)
