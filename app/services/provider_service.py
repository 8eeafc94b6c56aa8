"""
Clientes de los proveedores de datos de identidad.

- Primario: JSON estructurado en `result`. Reporta créditos agotados con un
  código en `detalle.error`.
- Secundario: texto libre en `message` + URL de la foto en `urls.IMAGE`.

Cada cliente hace una sola consulta por llamada; no hay reintentos.
"""

import base64
import logging

import httpx
from pydantic import ValidationError

from app.config import Settings
from app.core.exceptions import (
    ConfigError,
    CreditsExhaustedError,
    EmptyResultError,
    NotFoundError,
    UpstreamError,
)
from app.schemas.ficha import IdentityRecord, SecondaryResponse

logger = logging.getLogger(__name__)


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _error_code(payload) -> str | None:
    """Extrae `detalle.error` de una respuesta de error estructurada."""
    if not isinstance(payload, dict):
        return None
    detalle = payload.get("detalle")
    if isinstance(detalle, dict):
        code = detalle.get("error")
        return str(code) if code is not None else None
    return None


class PrimaryProviderClient:
    """Proveedor primario: `GET <url>?dni=<dni>` -> `{result: {...}}`."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def fetch(self, dni: str) -> IdentityRecord:
        url = self.settings.PRIMARY_PROVIDER_URL
        if not url:
            raise ConfigError("PRIMARY_PROVIDER_URL no está configurado")

        try:
            response = await self.client.get(url, params={"dni": dni})
        except httpx.TimeoutException:
            raise UpstreamError("Timeout al consultar el proveedor primario")
        except httpx.RequestError as exc:
            raise UpstreamError(f"Error de conexión con el proveedor primario: {exc}")

        payload = _json_or_none(response)

        code = _error_code(payload)
        if code is not None and code == self.settings.PRIMARY_CREDITS_ERROR_CODE:
            raise CreditsExhaustedError(
                "El proveedor primario no tiene créditos disponibles",
                response_data=payload,
            )

        if response.status_code == 404:
            raise NotFoundError(
                f"El proveedor primario no tiene datos para el DNI {dni}",
                response_data=payload if isinstance(payload, dict) else None,
            )

        if response.status_code != 200:
            raise UpstreamError(
                f"Error del proveedor primario, status {response.status_code}",
                response_data=payload if isinstance(payload, dict) else None,
            )

        if not isinstance(payload, dict):
            raise UpstreamError("El proveedor primario devolvió una respuesta no JSON")

        result = payload.get("result")
        if not result:
            raise EmptyResultError(
                "El proveedor primario respondió sin datos",
                response_data=payload,
            )

        try:
            return IdentityRecord.model_validate(result)
        except ValidationError as exc:
            raise UpstreamError(
                f"El proveedor primario devolvió un registro inválido: {exc.error_count()} errores",
                response_data=payload,
            )


class SecondaryProviderClient:
    """Proveedor secundario: `GET <url>?dni=<dni>` -> `{status, dni, message, urls}`."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    async def fetch(self, dni: str) -> SecondaryResponse:
        url = self.settings.SECONDARY_PROVIDER_URL
        if not url:
            raise ConfigError("SECONDARY_PROVIDER_URL no está configurado")

        try:
            response = await self.client.get(url, params={"dni": dni})
        except httpx.TimeoutException:
            raise UpstreamError("Timeout al consultar el proveedor secundario")
        except httpx.RequestError as exc:
            raise UpstreamError(f"Error de conexión con el proveedor secundario: {exc}")

        payload = _json_or_none(response)

        if response.status_code == 404:
            raise NotFoundError("La consulta de respaldo no produjo datos utilizables")

        if response.status_code != 200 or not isinstance(payload, dict):
            raise UpstreamError(
                f"Error del proveedor secundario, status {response.status_code}",
                response_data=payload if isinstance(payload, dict) else None,
            )

        try:
            data = SecondaryResponse.model_validate(payload)
        except ValidationError:
            raise UpstreamError(
                "El proveedor secundario devolvió una respuesta inválida",
                response_data=payload,
            )

        if not data.is_ok:
            raise NotFoundError(
                "La consulta de respaldo no produjo datos utilizables",
                response_data=payload,
            )

        return data

    async def fetch_image(self, url: str) -> str | None:
        """
        Descarga la foto referenciada por el secundario y la retorna en base64,
        igual que la entrega el primario. Retorna None si no se pudo obtener.
        """
        try:
            response = await self.client.get(url)
        except httpx.RequestError as exc:
            logger.warning(f"No se pudo descargar la foto {url}: {exc}")
            return None

        if response.status_code != 200 or not response.content:
            logger.warning(f"Foto no disponible ({response.status_code}): {url}")
            return None

        return base64.b64encode(response.content).decode("ascii")
