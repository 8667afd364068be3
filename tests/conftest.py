import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LLM_PROVIDER", "mock")
os.environ.setdefault("TTS_PROVIDER", "mock")
os.environ.setdefault("STORAGE_PROVIDER", "local")

import pytest
from fastapi.testclient import TestClient

from karetek.core.database import Database
from karetek.core.llm_client import MockLLMClient
from karetek.core.repository import Repository
from karetek.core.services import Services
from karetek.core.storage import LocalStorageClient
from karetek.core.tts_client import MockTTSClient
from karetek.main import create_app

@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()

@pytest.fixture
def repository(database):
    return Repository(database)

@pytest.fixture
def llm():
    return MockLLMClient()

@pytest.fixture
def tts():
    return MockTTSClient()

@pytest.fixture
def storage(tmp_path):
    return LocalStorageClient(str(tmp_path / "storage"), "http://testserver")

@pytest.fixture
def services(database, repository, llm, tts, storage):
    return Services(repository=repository, llm=llm, tts=tts, storage=storage, database=database)

@pytest.fixture
def client(services):
    return TestClient(create_app(services))

@pytest.fixture
def register_user(client):
    """Register an account and return (auth headers, user)"""

    def _register(email="jane@example.com", password="correct-horse", **extra):
        payload = {
            "email": email,
            "password": password,
            "firstName": "Jane",
            "lastName": "Doe",
            **extra,
        }
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()
        return {"Authorization": f"Bearer {data['token']}"}, data["user"]

    return _register

@pytest.fixture
def auth_headers(register_user):
    headers, _ = register_user()
    return headers
