"""
Generación de la ficha: consulta -> render -> subida -> respuesta JSON.
Traduce los resultados del orquestador a errores HTTP.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import quote
from uuid import uuid4

import httpx

from app.config import Settings
from app.core.exceptions import FichaError, GenerationException, NotFoundException
from app.schemas.ficha import FichaFields, FichaResponse, FichaUrls, IdentityRecord
from app.services.artifact_store_service import GitHubArtifactStore
from app.services.lookup_service import Found, LookupOrchestrator, LookupSource, NotFound
from app.services.render_service import CardRenderer, fetch_icon, make_qr

logger = logging.getLogger(__name__)


def build_download_url(settings: Settings, file_url: str) -> str:
    """URL del proxy de descarga que fuerza al navegador a guardar el archivo."""
    base = settings.API_BASE_URL.rstrip("/")
    prefix = settings.API_PREFIX.rstrip("/")
    return f"{base}{prefix}/descargar-ficha?url={quote(file_url, safe='')}"


def build_message(dni: str, record: IdentityRecord | None, estado: str) -> str:
    lines = [f"DNI : {dni}"]
    if record is not None:
        lines += [
            f"APELLIDO PATERNO : {record.ape_paterno or '-'}",
            f"APELLIDO MATERNO : {record.ape_materno or '-'}",
            f"NOMBRES : {record.pre_nombres or '-'}",
        ]
    lines.append(f"ESTADO : {estado}")
    return "\n".join(lines)


def build_response(settings: Settings, dni: str, file_url: str, message: str) -> FichaResponse:
    return FichaResponse(
        bot=settings.BOT_NAME,
        chat_id=settings.BOT_CHAT_ID,
        date=datetime.now(timezone.utc).isoformat(),
        fields=FichaFields(dni=dni),
        from_id=settings.BOT_CHAT_ID,
        message=message,
        parts_received=1,
        urls=FichaUrls(FILE=build_download_url(settings, file_url)),
    )


async def generar_ficha(
    dni: str,
    *,
    settings: Settings,
    orchestrator: LookupOrchestrator,
    store: GitHubArtifactStore,
    renderer: CardRenderer,
    client: httpx.AsyncClient,
) -> FichaResponse:
    """
    Retorna la ficha del DNI: la cacheada si existe; si no, la genera,
    la sube a GitHub y retorna su URL de descarga.

    Raises:
        NotFoundException: ningún proveedor tiene el DNI.
        GenerationException: error de proveedor, render o subida.
    """
    outcome = await orchestrator.lookup(dni)

    if isinstance(outcome, NotFound):
        raise NotFoundException(detalle=outcome.detail)
    if not isinstance(outcome, Found):
        raise GenerationException(detalle=outcome.detail)

    if outcome.source is LookupSource.CACHE:
        message = build_message(dni, None, "FICHA ENCONTRADA EN GITHUB.")
        return build_response(settings, dni, outcome.cached_url, message)

    record = outcome.record
    icon = await fetch_icon(client, settings.APP_ICON_URL)
    try:
        image = renderer.render(record, icon=icon, qr=make_qr(settings.APP_QR_URL))
    except (OSError, ValueError) as exc:
        logger.error(f"Error renderizando la ficha del DNI {dni}: {exc}")
        raise GenerationException(detalle=str(exc))

    # el nombre usa el DNI consultado: es el prefijo que busca el cache
    file_name = f"{dni}_{uuid4()}{settings.ARTIFACT_EXTENSION}"
    try:
        file_url = await store.upload(file_name, image)
    except FichaError as exc:
        logger.error(f"Error subiendo la ficha del DNI {dni}: {exc.message}")
        raise GenerationException(detalle=exc.message)

    logger.info(f"DNI {dni}: ficha generada desde {outcome.source.value}")
    message = build_message(dni, record, "FICHA GENERADA Y GUARDADA EN GITHUB.")
    return build_response(settings, dni, file_url, message)
