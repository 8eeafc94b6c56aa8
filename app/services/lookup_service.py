"""
Orquestador de la consulta de un DNI.

Secuencia: cache -> proveedor primario -> (respaldo) proveedor secundario
-> normalización. Cada fuente se intenta como máximo una vez por consulta.
El resultado es un LookupOutcome inmutable; el orquestador nunca lanza
errores de dominio a quien lo llama.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Union

from app.config import Settings
from app.core.exceptions import (
    CreditsExhaustedError,
    EmptyResultError,
    FichaError,
    NormalizationError,
    NotFoundError,
)
from app.schemas.ficha import IdentityRecord
from app.services.artifact_store_service import GitHubArtifactStore
from app.services.normalizer_service import normalize_secondary
from app.services.provider_service import PrimaryProviderClient, SecondaryProviderClient

logger = logging.getLogger(__name__)


class LookupSource(str, enum.Enum):
    CACHE = "cache"
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class Found:
    """Registro obtenido. En un acierto de cache `record` es None y `cached_url` apunta a la ficha."""

    record: IdentityRecord | None
    source: LookupSource
    cached_url: str | None = None


@dataclass(frozen=True)
class NotFound:
    detail: str


@dataclass(frozen=True)
class SourceError:
    detail: str


LookupOutcome = Union[Found, NotFound, SourceError]


class LookupOrchestrator:
    def __init__(
        self,
        settings: Settings,
        cache: GitHubArtifactStore,
        primary: PrimaryProviderClient,
        secondary: SecondaryProviderClient,
    ):
        self.settings = settings
        self.cache = cache
        self.primary = primary
        self.secondary = secondary

    def should_fallback(self, exc: FichaError) -> bool:
        """Decide si un error del primario activa el proveedor secundario."""
        if isinstance(exc, (CreditsExhaustedError, EmptyResultError)):
            return True
        return self.settings.FALLBACK_ON_ANY_PRIMARY_ERROR

    async def lookup(self, dni: str) -> LookupOutcome:
        # 1. Cache
        probe = await self.cache.probe(dni)
        if probe.hit:
            logger.info(f"DNI {dni}: ficha encontrada en cache")
            return Found(record=None, source=LookupSource.CACHE, cached_url=probe.url)
        logger.info(f"DNI {dni}: cache {probe.status.value}, consultando proveedor primario")

        # 2. Primario
        try:
            record = await self.primary.fetch(dni)
            return Found(record=record, source=LookupSource.PRIMARY)
        except FichaError as exc:
            if not self.should_fallback(exc):
                logger.error(f"DNI {dni}: error del proveedor primario sin respaldo: {exc.message}")
                if isinstance(exc, NotFoundError):
                    return NotFound(exc.message)
                return SourceError(exc.message)
            logger.warning(f"DNI {dni}: {exc.message}; usando proveedor secundario")

        # 3. Secundario
        try:
            response = await self.secondary.fetch(dni)
            record = normalize_secondary(response, dni)
        except NotFoundError as exc:
            logger.error(f"DNI {dni}: {exc.message}")
            return NotFound(exc.message)
        except NormalizationError as exc:
            logger.error(f"DNI {dni}: falló la normalización del respaldo: {exc.message}")
            return SourceError(f"Falló la consulta de respaldo: {exc.message}")
        except FichaError as exc:
            logger.error(f"DNI {dni}: error del proveedor secundario: {exc.message}")
            return SourceError(exc.message)

        image_url = response.urls.get("IMAGE")
        if image_url:
            foto = await self.secondary.fetch_image(image_url)
            if foto is not None:
                record = record.model_copy(
                    update={"imagenes": record.imagenes.model_copy(update={"foto": foto})}
                )

        return Found(record=record, source=LookupSource.SECONDARY)
