import os

import pytest
from fastapi.testclient import TestClient

os.environ["ENV"] = "test"
os.environ["OBSERVABILITY_ENABLED"] = "false"
os.environ["REMOVAL_LEDGER_BACKEND"] = "memory"
os.environ["CELERY_EAGER_MODE"] = "true"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/0"
os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    from news_aggregator.core.config import get_settings

    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int) -> None:
        self.value += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client():
    from news_aggregator.main import create_app

    class StaticService:
        async def extract(self, input_url):
            raise AssertionError("extract should not be called")

    with TestClient(create_app(service=StaticService())) as test_client:
        yield test_client
