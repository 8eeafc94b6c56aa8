"""
Script para consultar un DNI desde la terminal usando el mismo flujo del API
(cache en GitHub -> proveedor primario -> proveedor secundario).

Uso:
    python scripts/consultar_dni.py 12345678
    python scripts/consultar_dni.py 12345678 --render ficha.png  # genera la imagen local

Requisitos:
    - Variables de entorno o .env con PRIMARY_PROVIDER_URL, SECONDARY_PROVIDER_URL
      y, para el cache, GITHUB_TOKEN y GITHUB_REPO
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Agregar el directorio raíz al path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

from app.config import get_settings
from app.services.artifact_store_service import GitHubArtifactStore
from app.services.lookup_service import Found, LookupOrchestrator
from app.services.provider_service import PrimaryProviderClient, SecondaryProviderClient
from app.services.render_service import CardRenderer, fetch_icon, make_qr


async def consultar(dni: str, render_path: Path | None) -> int:
    settings = get_settings()

    async with httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS, follow_redirects=True
    ) as client:
        orchestrator = LookupOrchestrator(
            settings,
            cache=GitHubArtifactStore(settings, client),
            primary=PrimaryProviderClient(settings, client),
            secondary=SecondaryProviderClient(settings, client),
        )
        outcome = await orchestrator.lookup(dni)

        if not isinstance(outcome, Found):
            print(json.dumps({"resultado": type(outcome).__name__, **asdict(outcome)}, ensure_ascii=False))
            return 1

        output = {
            "resultado": "Found",
            "fuente": outcome.source.value,
            "cached_url": outcome.cached_url,
        }
        if outcome.record is not None:
            output["registro"] = outcome.record.model_dump(
                by_alias=True, exclude={"imagenes"}
            )
        print(json.dumps(output, ensure_ascii=False, indent=2))

        if render_path is not None:
            if outcome.record is None:
                print("La ficha ya existe en GitHub; no se genera una local.")
                return 0
            icon = await fetch_icon(client, settings.APP_ICON_URL)
            renderer = CardRenderer(watermark_text=settings.WATERMARK_TEXT)
            render_path.write_bytes(
                renderer.render(outcome.record, icon=icon, qr=make_qr(settings.APP_QR_URL))
            )
            print(f"Ficha guardada en {render_path}")

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Consulta un DNI con el flujo de fichas.")
    parser.add_argument("dni", help="Número de DNI")
    parser.add_argument("--render", type=Path, default=None, help="Ruta PNG para guardar la ficha")
    args = parser.parse_args()

    sys.exit(asyncio.run(consultar(args.dni.strip(), args.render)))


if __name__ == "__main__":
    main()
