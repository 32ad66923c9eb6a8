"""
Shared test fixtures: SQLite test database, test client, auth helpers.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set env before importing app modules: Settings() is read at import time
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["GEMINI_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""
os.environ["CLOUDFLARE_R2_ACCOUNT_ID"] = ""

from renoquote import storage
from renoquote.database import Base, get_db
from renoquote.main import app


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def uploads_dir(tmp_path, monkeypatch):
    """Local image storage goes to a temp dir."""
    monkeypatch.setattr(storage, "UPLOAD_ROOT", tmp_path / "uploads")
    return tmp_path / "uploads"


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def auth_headers(client):
    """Register a test admin and return auth headers."""
    response = client.post("/api/auth/register", json={
        "email": "admin@redwhitereno.ca",
        "password": "strongpassword123",
    })
    assert response.status_code == 201
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def lead_id(client):
    """Submit a kitchen lead through the public endpoint and return its id."""
    response = client.post("/api/leads/", json={
        "name": "Jane Homeowner",
        "email": "jane@example.com",
        "phone": "519-555-0199",
        "projectType": "kitchen",
        "areaSqft": 150,
        "finishLevel": "standard",
    })
    assert response.status_code == 201
    return response.json()["lead_id"]
