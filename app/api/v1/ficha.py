"""
Endpoints de generación y descarga de fichas DNI.
"""

import logging
import re

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.api.dependencies import (
    get_artifact_store,
    get_card_renderer,
    get_http_client,
    get_lookup_orchestrator,
)
from app.config import Settings, get_settings
from app.core.exceptions import BadRequestException, GenerationException, UpstreamError
from app.schemas.ficha import FichaResponse
from app.services.artifact_store_service import GitHubArtifactStore
from app.services.ficha_service import generar_ficha
from app.services.lookup_service import LookupOrchestrator
from app.services.render_service import CardRenderer

logger = logging.getLogger(__name__)

router = APIRouter()

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]")


def attachment_name(file_name: str) -> str:
    """Nombre seguro para Content-Disposition (ASCII, sin comillas ni separadores)."""
    name = _UNSAFE_FILENAME_RE.sub("_", file_name).strip("._")
    return name or "ficha.png"


@router.get(
    "/generar-ficha",
    response_model=FichaResponse,
    summary="Generar ficha de un DNI",
    description=(
        "Retorna la ficha del DNI si ya existe en GitHub; si no, consulta "
        "los proveedores, genera la imagen, la sube y retorna la URL de descarga."
    ),
)
async def get_ficha(
    dni: str | None = Query(None, description="Número de DNI", examples=["12345678"]),
    settings: Settings = Depends(get_settings),
    orchestrator: LookupOrchestrator = Depends(get_lookup_orchestrator),
    store: GitHubArtifactStore = Depends(get_artifact_store),
    renderer: CardRenderer = Depends(get_card_renderer),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> FichaResponse:
    dni = (dni or "").strip()
    if not dni:
        raise BadRequestException("Falta el parámetro DNI")

    return await generar_ficha(
        dni,
        settings=settings,
        orchestrator=orchestrator,
        store=store,
        renderer=renderer,
        client=client,
    )


@router.get(
    "/descargar-ficha",
    summary="Descargar ficha",
    description="Proxy que descarga la ficha guardada y fuerza la descarga en el navegador.",
    response_class=Response,
)
async def download_ficha(
    url: str | None = Query(None, description="URL raw de la ficha en GitHub"),
    store: GitHubArtifactStore = Depends(get_artifact_store),
) -> Response:
    if not url:
        raise BadRequestException("Falta el parámetro 'url' de la imagen.")
    if not store.is_stored_url(url):
        raise BadRequestException("La URL no pertenece al almacén de fichas.")

    try:
        content, file_name = await store.download(url)
    except UpstreamError as exc:
        logger.error(f"Error al descargar la ficha {url}: {exc.message}")
        raise GenerationException(
            "Error al procesar la descarga del archivo.", detalle=exc.message
        )

    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{attachment_name(file_name)}"'},
    )
