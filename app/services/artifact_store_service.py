"""
Almacén de fichas en un repositorio de GitHub (API de Contents).

- probe: busca una ficha ya generada para el DNI (cache). Nunca lanza.
- upload: sube una imagen nueva y retorna su URL raw pública.
- download: trae una ficha guardada para el proxy de descarga.

Docs: https://docs.github.com/en/rest/repos/contents
"""

import base64
import enum
import logging
from dataclasses import dataclass

import httpx

from app.config import Settings
from app.core.exceptions import ConfigError, UpstreamError

logger = logging.getLogger(__name__)

_USER_AGENT = "FichaDniGenerator"


class CacheStatus(str, enum.Enum):
    HIT = "hit"
    MISS = "miss"
    NO_CREDENTIALS = "no_credentials"
    ERROR = "error"


@dataclass(frozen=True)
class CacheProbeResult:
    status: CacheStatus
    url: str | None = None
    detail: str | None = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


class GitHubArtifactStore:
    """Lectura y escritura de fichas en `GITHUB_REPO/GITHUB_ARTIFACT_DIR`."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    # ── Helpers ──────────────────────────────────────

    def _owner_repo(self) -> tuple[str, str]:
        if not self.settings.GITHUB_TOKEN or not self.settings.GITHUB_REPO:
            raise ConfigError("GITHUB_TOKEN o GITHUB_REPO no están definidos")
        owner_repo = self.settings.github_owner_repo
        if owner_repo is None:
            raise ConfigError("El formato de GITHUB_REPO debe ser 'owner/repository-name'")
        return owner_repo

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.settings.GITHUB_TOKEN}",
            "Accept": "application/vnd.github+json",
            "User-Agent": _USER_AGENT,
        }

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        return f"{self.settings.GITHUB_API_URL.rstrip('/')}/repos/{owner}/{repo}/contents/{path}"

    def _directory(self) -> str:
        return self.settings.GITHUB_ARTIFACT_DIR.strip("/")

    def public_url(self, owner: str, repo: str, path: str) -> str:
        base = self.settings.GITHUB_RAW_URL.rstrip("/")
        return f"{base}/{owner}/{repo}/{self.settings.GITHUB_BRANCH}/{path}"

    def is_stored_url(self, url: str) -> bool:
        """True si la URL apunta a un archivo del directorio de fichas de este repositorio."""
        owner_repo = self.settings.github_owner_repo
        if owner_repo is None:
            return False
        prefix = self.public_url(*owner_repo, self._directory()) + "/"
        if not url.startswith(prefix):
            return False
        name = url[len(prefix):].split("?", 1)[0]
        return bool(name) and "/" not in name and "\\" not in name and ".." not in name

    # ── Cache ────────────────────────────────────────

    async def probe(self, dni: str) -> CacheProbeResult:
        """
        Busca en el directorio remoto el primer archivo `<dni>_*<ext>`.

        Sin credenciales, directorio inexistente o cualquier error de red se
        reportan como estados distintos, pero nunca se lanzan: un cache caído
        no debe impedir la generación.
        """
        try:
            owner, repo = self._owner_repo()
        except ConfigError as exc:
            logger.warning(f"Cache de fichas deshabilitado: {exc.message}")
            return CacheProbeResult(CacheStatus.NO_CREDENTIALS, detail=exc.message)

        url = self._contents_url(owner, repo, self._directory())
        try:
            response = await self.client.get(
                url,
                params={"ref": self.settings.GITHUB_BRANCH},
                headers=self._headers(),
            )
        except httpx.RequestError as exc:
            logger.warning(f"Error listando fichas en GitHub: {exc}")
            return CacheProbeResult(CacheStatus.ERROR, detail=str(exc))

        if response.status_code == 404:
            return CacheProbeResult(CacheStatus.MISS)

        if response.status_code != 200:
            logger.warning(f"GitHub respondió {response.status_code} al listar fichas")
            return CacheProbeResult(
                CacheStatus.ERROR, detail=f"status {response.status_code}"
            )

        try:
            entries = response.json()
        except ValueError:
            logger.warning("GitHub devolvió un listado no JSON")
            return CacheProbeResult(CacheStatus.ERROR, detail="respuesta no JSON")

        if not isinstance(entries, list):
            return CacheProbeResult(CacheStatus.ERROR, detail="el destino no es un directorio")

        prefix = f"{dni}_"
        extension = self.settings.ARTIFACT_EXTENSION
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name") or ""
            if name.startswith(prefix) and name.endswith(extension):
                path = entry.get("path") or f"{self._directory()}/{name}"
                return CacheProbeResult(
                    CacheStatus.HIT, url=self.public_url(owner, repo, path)
                )

        return CacheProbeResult(CacheStatus.MISS)

    # ── Escritura ────────────────────────────────────

    async def upload(self, file_name: str, content: bytes) -> str:
        """
        Crea (o sobrescribe) `<dir>/<file_name>` en el repositorio.
        Retorna la URL raw pública del archivo.
        """
        owner, repo = self._owner_repo()
        path = f"{self._directory()}/{file_name}"
        dni = file_name.split("_")[0]

        body = {
            "message": f"feat: Ficha generada para DNI {dni}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.settings.GITHUB_BRANCH,
        }

        logger.info(f"Subiendo ficha a GitHub: {path} en {self.settings.GITHUB_REPO}")
        try:
            response = await self.client.put(
                self._contents_url(owner, repo, path),
                json=body,
                headers=self._headers(),
            )
        except httpx.RequestError as exc:
            logger.error(f"Error de conexión con GitHub: {exc}")
            raise UpstreamError(f"Error de conexión con GitHub: {exc}")

        if response.status_code not in (200, 201):
            logger.error(f"GitHub error {response.status_code}: {response.text[:200]}")
            raise UpstreamError(
                f"GitHub rechazó la subida, status {response.status_code}",
                response_data={"body": response.text[:500]},
            )

        public_url = self.public_url(owner, repo, path)
        logger.info(f"Ficha subida a GitHub: {public_url}")
        return public_url

    # ── Descarga ─────────────────────────────────────

    async def download(self, url: str) -> tuple[bytes, str]:
        """Descarga una ficha guardada. Retorna (contenido, nombre de archivo)."""
        try:
            response = await self.client.get(url)
        except httpx.RequestError as exc:
            raise UpstreamError(f"Error descargando la ficha: {exc}")

        if response.status_code != 200:
            raise UpstreamError(f"No se pudo descargar la ficha, status {response.status_code}")

        file_name = url.split("?", 1)[0].rstrip("/").split("/")[-1]
        return response.content, file_name
