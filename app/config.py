"""
Configuración central de la aplicación.
Usa Pydantic BaseSettings para validar variables de entorno.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "http://localhost:8000"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────
    APP_NAME: str = "Ficha DNI"
    APP_ENV: str = "development"
    DEBUG: bool = True
    API_PREFIX: str = ""
    LOG_LEVEL: str = "INFO"

    # ── Server ───────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    # URL pública con la que se arman los links de descarga
    API_BASE_URL: str = DEFAULT_API_BASE_URL

    # ── CORS ─────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["*"]

    # ── HTTP saliente ────────────────────────────────
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # ── Proveedor primario (JSON estructurado) ───────
    PRIMARY_PROVIDER_URL: str = "https://banckend-poxyv1-cosultape-masitaprex.fly.dev/reniec"
    PRIMARY_CREDITS_ERROR_CODE: str = "CREDITOS_INSUFICIENTES"

    # ── Proveedor secundario (texto libre) ───────────
    SECONDARY_PROVIDER_URL: str = ""

    # ── Política de respaldo ─────────────────────────
    # True: cualquier error del primario activa el respaldo.
    # False: solo créditos agotados o resultado vacío.
    FALLBACK_ON_ANY_PRIMARY_ERROR: bool = True

    # ── GitHub (almacén de fichas) ───────────────────
    GITHUB_TOKEN: str = ""
    GITHUB_REPO: str = ""  # formato "usuario/repositorio"
    GITHUB_BRANCH: str = "main"
    GITHUB_ARTIFACT_DIR: str = "public"
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_RAW_URL: str = "https://raw.githubusercontent.com"
    ARTIFACT_EXTENSION: str = ".png"

    # ── Ficha ────────────────────────────────────────
    APP_ICON_URL: str = "https://www.socialcreator.com/srv/imgs/gen/79554_icohome.png"
    APP_QR_URL: str = "https://www.socialcreator.com/consultapeapk#apps"
    WATERMARK_TEXT: str = "RENIEC"

    # ── Respuesta ────────────────────────────────────
    BOT_NAME: str = "Consulta pe"
    BOT_CHAT_ID: int = 7658983973

    @property
    def github_owner_repo(self) -> tuple[str, str] | None:
        """Retorna (owner, repo) o None si GITHUB_REPO no es válido."""
        owner, _, repo = self.GITHUB_REPO.partition("/")
        if not owner or not repo or "/" in repo:
            return None
        return owner, repo

    @property
    def has_github_credentials(self) -> bool:
        return bool(self.GITHUB_TOKEN) and self.github_owner_repo is not None

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
