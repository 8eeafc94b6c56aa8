"""
Excepciones de la API y del flujo de consulta.

- ApiException y derivadas: errores HTTP con cuerpo {"error", "detalle"}.
- FichaError y derivadas: errores internos de proveedores, almacén y
  normalización. No salen del orquestador; se traducen a ApiException.
"""

from fastapi import HTTPException, status


# ── Errores HTTP ─────────────────────────────────────


class ApiException(HTTPException):
    """Error HTTP con cuerpo {"error": ..., "detalle": ...}."""

    def __init__(self, status_code: int, error: str, detalle: str | None = None):
        self.error = error
        self.detalle = detalle
        super().__init__(status_code=status_code, detail=error)

    def to_content(self) -> dict:
        content = {"error": self.error}
        if self.detalle:
            content["detalle"] = self.detalle
        return content


class BadRequestException(ApiException):
    """Parámetros inválidos o faltantes (400)."""

    def __init__(self, error: str = "Solicitud inválida", detalle: str | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, error, detalle)


class NotFoundException(ApiException):
    """Recurso no encontrado (404)."""

    def __init__(
        self,
        error: str = "No se encontró información para el DNI ingresado.",
        detalle: str | None = None,
    ):
        super().__init__(status.HTTP_404_NOT_FOUND, error, detalle)


class GenerationException(ApiException):
    """Fallo al generar o guardar la ficha (500)."""

    def __init__(
        self,
        error: str = "Error al generar la ficha o subir a GitHub",
        detalle: str | None = None,
    ):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, error, detalle)


# ── Errores de dominio ───────────────────────────────


class FichaError(Exception):
    """Error base del flujo de consulta y generación."""

    def __init__(self, message: str, response_data: dict | None = None):
        self.message = message
        self.response_data = response_data or {}
        super().__init__(message)


class ConfigError(FichaError):
    """Falta configuración (credenciales de GitHub, URL de proveedor)."""


class NotFoundError(FichaError):
    """El proveedor no tiene datos para el DNI."""


class UpstreamError(FichaError):
    """Fallo de transporte o de formato hablando con un servicio externo."""


class CreditsExhaustedError(UpstreamError):
    """El proveedor primario reporta créditos agotados."""


class EmptyResultError(UpstreamError):
    """El proveedor primario respondió 200 sin `result`."""


class NormalizationError(FichaError):
    """El mensaje del proveedor secundario no tiene campos reconocibles."""
