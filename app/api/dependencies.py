"""
Dependencias de FastAPI: cliente HTTP por request y servicios armados
con la configuración inyectada.
"""

from collections.abc import AsyncGenerator

import httpx
from fastapi import Depends

from app.config import Settings, get_settings
from app.services.artifact_store_service import GitHubArtifactStore
from app.services.lookup_service import LookupOrchestrator
from app.services.provider_service import PrimaryProviderClient, SecondaryProviderClient
from app.services.render_service import CardRenderer


async def get_http_client(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Un AsyncClient por request; se cierra al terminar la respuesta."""
    async with httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
    ) as client:
        yield client


def get_artifact_store(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> GitHubArtifactStore:
    return GitHubArtifactStore(settings, client)


def get_lookup_orchestrator(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    store: GitHubArtifactStore = Depends(get_artifact_store),
) -> LookupOrchestrator:
    return LookupOrchestrator(
        settings,
        cache=store,
        primary=PrimaryProviderClient(settings, client),
        secondary=SecondaryProviderClient(settings, client),
    )


def get_card_renderer(settings: Settings = Depends(get_settings)) -> CardRenderer:
    return CardRenderer(watermark_text=settings.WATERMARK_TEXT)
