# tests/conftest.py

import os
import tempfile
from pathlib import Path
from typing import Dict

import pytest
from fastapi.testclient import TestClient

# The import-time app in questify.backend.main must not create a file in the cwd.
os.environ.setdefault("DB_PATH", os.path.join(tempfile.mkdtemp(prefix="questify-"), "import.db"))

from questify.backend.config import Settings  # noqa: E402
from questify.backend.main import create_app  # noqa: E402
from questify.backend.services import AuthService, TaskService  # noqa: E402
from questify.backend.store import CredentialStore, TaskStore  # noqa: E402

SECRET = "test-secret-key"

JESSICA = {"name": "Jessica Smith", "email": "test@test.pl", "password": "test111"}

EASY_TASK = {
    "level": "Easy",
    "group": "WORK",
    "name": "My easy work task",
    "date": "2023-07-21T17:32:28Z",
}


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Per-test settings on a temporary SQLite file; low bcrypt cost keeps tests fast."""
    return Settings(
        _env_file=None,
        db_path=str(tmp_path / "questify.db"),
        db_secret_key=SECRET,
        bcrypt_rounds=4,
        api_prefix="",
        strict_session_tokens=False,
    )


@pytest.fixture()
def credential_store(settings: Settings) -> CredentialStore:
    return CredentialStore(settings.db_path)


@pytest.fixture()
def task_store(settings: Settings) -> TaskStore:
    return TaskStore(settings.db_path)


@pytest.fixture()
def auth_service(credential_store: CredentialStore, settings: Settings) -> AuthService:
    return AuthService(credential_store, settings)


@pytest.fixture()
def task_service(task_store: TaskStore) -> TaskService:
    return TaskService(task_store)


@pytest.fixture()
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


@pytest.fixture()
def auth_headers(client: TestClient) -> Dict[str, str]:
    assert client.post("/signup", json=JESSICA).status_code == 201
    res = client.post("/login", json={"email": JESSICA["email"], "password": JESSICA["password"]})
    assert res.status_code == 200
    return {"Authorization": f"Bearer {res.json()['token']}"}
