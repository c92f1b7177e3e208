import pytest
import respx
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.main import app

BASE_URL = "https://api.example.com/v1"
ENDPOINT = f"{BASE_URL}/chat/completions"


@pytest.fixture
def settings():
    return Settings(base_url=BASE_URL, api_key="test-key", model="test/image-model")


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def backend():
    with respx.mock(assert_all_called=False) as mock:
        yield mock
