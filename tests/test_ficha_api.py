"""
Tests end-to-end de /generar-ficha y /descargar-ficha.
"""

import base64
import io
import json
from urllib.parse import parse_qs, quote, urlparse

from PIL import Image

from tests.fakes import (
    GITHUB_CONTENTS_URL,
    ICON_URL,
    PRIMARY_URL,
    RAW_BASE_URL,
    SECONDARY_URL,
    make_png,
)

CREDITS_ERROR = {"error": "Sin créditos", "detalle": {"error": "CREDITOS_INSUFICIENTES"}}


def _file_param(body: dict) -> str:
    file_url = body["urls"]["FILE"]
    assert file_url.startswith("https://fichas.test/descargar-ficha?url=")
    return parse_qs(urlparse(file_url).query)["url"][0]


def _accept_uploads(upstream, dni: str) -> str:
    """Acepta el PUT de cualquier archivo del DNI. Retorna el prefijo para `calls_to`."""
    prefix = f"{GITHUB_CONTENTS_URL}/{dni}_"
    upstream.add_prefix("PUT", prefix, status_code=201, json={"content": {}})
    return prefix


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_missing_dni_returns_400(client):
    response = await client.get("/generar-ficha")

    assert response.status_code == 400
    assert response.json() == {"error": "Falta el parámetro DNI"}


async def test_scenario_a_cache_hit(client, upstream):
    upstream.add("GET", GITHUB_CONTENTS_URL, json=[{"name": "12345678_old.png", "path": "public/12345678_old.png"}])

    response = await client.get("/generar-ficha", params={"dni": "12345678"})

    assert response.status_code == 200
    body = response.json()
    assert _file_param(body) == f"{RAW_BASE_URL}/12345678_old.png"
    assert body["fields"] == {"dni": "12345678"}
    assert body["bot"] == "Consulta pe"
    assert upstream.calls_to(PRIMARY_URL) == []
    assert upstream.calls_to(SECONDARY_URL) == []
    assert upstream.calls_to(GITHUB_CONTENTS_URL, method="PUT") == []


async def test_scenario_b_primary(client, upstream):
    upstream.add(
        "GET",
        PRIMARY_URL,
        json={"result": {"nuDni": "12345678", "apePaterno": "PEREZ", "apeMaterno": "GOMEZ", "preNombres": "JUAN"}},
    )
    upstream.add("GET", ICON_URL, content=make_png(size=(64, 64)))
    upload_prefix = _accept_uploads(upstream, "12345678")

    response = await client.get("/generar-ficha", params={"dni": "12345678"})

    assert response.status_code == 200
    body = response.json()
    assert "APELLIDO PATERNO : PEREZ" in body["message"]
    assert "ESTADO : FICHA GENERADA Y GUARDADA EN GITHUB." in body["message"]

    uploads = upstream.calls_to(upload_prefix, method="PUT")
    assert len(uploads) == 1
    uploaded = json.loads(uploads[0].content)
    image = Image.open(io.BytesIO(base64.b64decode(uploaded["content"])))
    assert image.format == "PNG"

    stored_url = _file_param(body)
    assert stored_url.startswith(f"{RAW_BASE_URL}/12345678_")
    assert stored_url.endswith(".png")
    assert stored_url.rsplit("/", 1)[1] == uploads[0].url.path.rsplit("/", 1)[1]


async def test_scenario_c_fallback_to_secondary(client, upstream):
    upstream.add("GET", PRIMARY_URL, status_code=402, json=CREDITS_ERROR)
    upstream.add(
        "GET",
        SECONDARY_URL,
        json={
            "status": "ok",
            "dni": "12345678",
            "message": "APELLIDOS : PEREZ GOMEZ\nNOMBRES : JUAN\nGENERO : MASCULINO [GENDER]",
            "urls": {"IMAGE": "https://img.test/foto.jpg"},
        },
    )
    upstream.add("GET", "https://img.test/foto.jpg", content=make_png())
    upload_prefix = _accept_uploads(upstream, "12345678")

    response = await client.get("/generar-ficha", params={"dni": "12345678"})

    assert response.status_code == 200
    message = response.json()["message"]
    assert "APELLIDO PATERNO : PEREZ" in message
    assert "APELLIDO MATERNO : GOMEZ" in message
    assert "NOMBRES : JUAN" in message
    uploads = upstream.calls_to(upload_prefix, method="PUT")
    assert len(uploads) == 1
    assert len(upstream.calls_to(SECONDARY_URL)) == 1


async def test_upload_is_named_after_the_requested_dni(client, upstream):
    upstream.add("GET", PRIMARY_URL, json={"result": {"nuDni": 1234567, "apePaterno": "PEREZ"}})
    upstream.add_prefix("PUT", f"{GITHUB_CONTENTS_URL}/", status_code=201, json={"content": {}})

    response = await client.get("/generar-ficha", params={"dni": "01234567"})

    assert response.status_code == 200
    body = response.json()
    assert body["fields"] == {"dni": "01234567"}
    uploads = upstream.calls_to(GITHUB_CONTENTS_URL, method="PUT")
    assert len(uploads) == 1
    assert uploads[0].url.path.rsplit("/", 1)[1].startswith("01234567_")
    assert _file_param(body).startswith(f"{RAW_BASE_URL}/01234567_")


async def test_scenario_d_both_providers_fail(client, upstream):
    upstream.add("GET", PRIMARY_URL, status_code=402, json=CREDITS_ERROR)
    upstream.add("GET", SECONDARY_URL, json={"status": "error", "message": ""})

    response = await client.get("/generar-ficha", params={"dni": "12345678"})

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "No se encontró información para el DNI ingresado."
    assert "detalle" in body


async def test_secondary_down_returns_500(client, upstream):
    upstream.fail("GET", PRIMARY_URL)
    upstream.fail("GET", SECONDARY_URL)

    response = await client.get("/generar-ficha", params={"dni": "12345678"})

    assert response.status_code == 500
    assert response.json()["error"] == "Error al generar la ficha o subir a GitHub"


async def test_upload_failure_returns_500(client, upstream):
    upstream.add("GET", PRIMARY_URL, json={"result": {"nuDni": "12345678"}})

    response = await client.get("/generar-ficha", params={"dni": "12345678"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Error al generar la ficha o subir a GitHub"
    assert "404" in body["detalle"]


async def test_download_proxy(client, upstream):
    url = f"{RAW_BASE_URL}/12345678_abc.png"
    upstream.add("GET", url, content=b"PNGDATA")

    response = await client.get(f"/descargar-ficha?url={quote(url, safe='')}")

    assert response.status_code == 200
    assert response.content == b"PNGDATA"
    assert response.headers["content-type"] == "image/png"
    assert response.headers["content-disposition"] == 'attachment; filename="12345678_abc.png"'


async def test_download_proxy_requires_url(client):
    response = await client.get("/descargar-ficha")

    assert response.status_code == 400


async def test_download_proxy_rejects_foreign_urls(client, upstream):
    response = await client.get("/descargar-ficha", params={"url": "https://evil.test/x.png"})

    assert response.status_code == 400
    assert upstream.calls == []


async def test_download_proxy_upstream_failure(client, upstream):
    response = await client.get("/descargar-ficha", params={"url": f"{RAW_BASE_URL}/no-existe.png"})

    assert response.status_code == 500
    assert response.json()["error"] == "Error al procesar la descarga del archivo."


async def test_download_proxy_sanitizes_file_name(client, upstream):
    url = f'{RAW_BASE_URL}/12345678_a"ñ.png'
    upstream.add("GET", url, content=b"PNGDATA")

    response = await client.get("/descargar-ficha", params={"url": url})

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="12345678_a__.png"'


async def test_download_proxy_rejects_other_repositories(client, upstream):
    url = "https://raw.githubusercontent.com/otro/repo/main/public/x.png"

    response = await client.get("/descargar-ficha", params={"url": url})

    assert response.status_code == 400
    assert upstream.calls == []
