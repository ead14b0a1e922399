import pytest
from fastapi.testclient import TestClient

from lexfill.config import Settings
from lexfill.main import create_app


@pytest.fixture
def settings():
    return Settings(llm_enabled=False)


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))
