import os
from typing import AsyncIterator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

# feedbox.main builds a module-level app on import; keep it off the network
os.environ.setdefault("DATABASE_URL", "memory://")

from feedbox.config import Settings
from feedbox.main import create_app
from feedbox.store import InMemoryFeedbackStore


@pytest.fixture()
def test_db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture()
def settings(test_db_url: str) -> Settings:
    return Settings(database_url=test_db_url, debug=True)


@pytest.fixture()
def app(settings: Settings):
    return create_app(settings)


@pytest_asyncio.fixture()
async def client(app) -> AsyncIterator[AsyncClient]:
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac


@pytest.fixture()
def memory_store() -> InMemoryFeedbackStore:
    return InMemoryFeedbackStore()


@pytest.fixture()
def feedback_payload() -> dict:
    return {
        "name": "Ana",
        "relationship": "Best Friend",
        "mood": "😊",
        "message": "Great!",
        "rating": 5,
        "timestamp": "2024-01-01T00:00:00Z",
    }
