"""
Fixtures compartidas para Pytest.
Configura settings de test, servicios externos simulados y clientes HTTP.
"""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_http_client
from app.config import Settings, get_settings
from app.main import app
from tests.fakes import ICON_URL, PRIMARY_URL, SECONDARY_URL, FakeUpstream


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        API_BASE_URL="https://fichas.test",
        PRIMARY_PROVIDER_URL=PRIMARY_URL,
        PRIMARY_CREDITS_ERROR_CODE="CREDITOS_INSUFICIENTES",
        SECONDARY_PROVIDER_URL=SECONDARY_URL,
        GITHUB_TOKEN="ghp_test",
        GITHUB_REPO="acme/fichas",
        APP_ICON_URL=ICON_URL,
        DEBUG=False,
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Cliente httpx que responde con los servicios simulados."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest_asyncio.fixture
async def client(settings: Settings, http_client: httpx.AsyncClient) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test contra la app, con settings y servicios simulados."""

    async def _get_test_http_client():
        yield http_client

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = _get_test_http_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
