# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Every test gets its own application bound to a fresh SQLite file under
# tmp_path, driven in-process through httpx's ASGI transport.
# =============================================================================

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient

from catalog_api.app.core.config import Settings
from catalog_api.app.main import create_app

TEST_SECRET = "test-signing-secret"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake():
    return Faker()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key=TEST_SECRET,
        database_url=str(tmp_path / "catalog.db"),
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    # ASGITransport does not run lifespan handlers; migrate explicitly.
    application.state.db.init_db()
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


async def register(client, fake, **overrides):
    """Register a user and return ``(user, token)``."""
    payload = {
        "name": fake.name(),
        "email": fake.email(),
        "password": fake.password(),
    }
    payload.update(overrides)
    response = await client.post("/register", json=payload)
    assert response.status_code == 200
    body = response.json()
    return body["result"], body["auth"]


@pytest.fixture
async def alice(client, fake):
    return await register(client, fake, name="Alice")


@pytest.fixture
async def bob(client, fake):
    return await register(client, fake, name="Bob")


@pytest.fixture
def broken_app(tmp_path):
    # The database directory does not exist, so every store call fails.
    settings = Settings(
        secret_key=TEST_SECRET,
        database_url=str(tmp_path / "missing" / "catalog.db"),
        log_level="WARNING",
    )
    return create_app(settings)


@pytest.fixture
async def broken_client(broken_app):
    transport = ASGITransport(app=broken_app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client
