import os
import json
import shutil
import tempfile

# Point the app at a throwaway storage directory before any app module is imported
TEST_STORAGE_DIR = tempfile.mkdtemp(prefix="jsoncsv-test-")
TEST_DB_PATH = os.path.join(TEST_STORAGE_DIR, "test_jsoncsv.db")
os.environ["JSONCSV_STORAGE_DIR"] = TEST_STORAGE_DIR
os.environ["JSONCSV_DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"

import pytest
from fastapi.testclient import TestClient

# Import models and app after the environment is set
from jsoncsv.models import Base, SessionLocal, engine
from jsoncsv.api import get_db as actual_get_db, get_session as actual_get_session
from jsoncsv.main import app
from jsoncsv.session import ConverterSession


# Clean up after all tests
def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(TEST_STORAGE_DIR, ignore_errors=True)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def converter_session():
    return ConverterSession()


@pytest.fixture(scope="function")
def client(db, converter_session):
    """Create a test client that uses the test database and a fresh converter session."""
    def override_get_db():
        try:
            yield db
        finally:
            db.rollback()

    app.dependency_overrides[actual_get_db] = override_get_db
    app.dependency_overrides[actual_get_session] = lambda: converter_session

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a file and return its path."""
    def _write(data, name="input.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def people():
    return [
        {"name": "Ada", "age": 36, "address": {"city": "London", "zip": "N1"}},
        {"name": "Grace", "age": 85, "tags": ["navy", "cobol"]},
        {"name": "Linus", "active": True, "address": {"city": "Portland"}},
    ]
