"""Shared fixtures for API tests: a fresh app (and fresh stores) per test."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from docstore.config import Settings
from docstore.main import create_app


@pytest.fixture
def app():
    return create_app(Settings())


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register_user(client: AsyncClient):
    """Register a user through the API and return its body (with ``accessToken``)."""

    async def register(email: str, password: str = "123456") -> dict:
        response = await client.post("/users/register", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()

    return register
