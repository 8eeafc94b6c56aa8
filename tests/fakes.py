"""
Servicios externos simulados y utilidades de imagen para los tests.
"""

import base64
import io
from collections.abc import Callable

import httpx
from PIL import Image

PRIMARY_URL = "https://primary.test/reniec"
SECONDARY_URL = "https://secondary.test/dni"
ICON_URL = "https://icons.test/icon.png"
GITHUB_CONTENTS_URL = "https://api.github.com/repos/acme/fichas/contents/public"
RAW_BASE_URL = "https://raw.githubusercontent.com/acme/fichas/main/public"


def make_png(size: tuple[int, int] = (20, 20), color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_png_base64(**kwargs) -> str:
    return base64.b64encode(make_png(**kwargs)).decode("ascii")


def _base_url(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class FakeUpstream:
    """
    Servicios externos simulados para httpx.MockTransport.
    Las rutas se registran por (método, URL sin query); lo no registrado responde 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: list[httpx.Request] = []
        self.prefix_routes: list[tuple] = []

    def add(self, method: str, url: str, *, status_code: int = 200, json=None, content: bytes | None = None):
        def _respond(request: httpx.Request) -> httpx.Response:
            if json is not None:
                return httpx.Response(status_code, json=json)
            return httpx.Response(status_code, content=content or b"")

        self.routes[(method, url)] = _respond

    def fail(self, method: str, url: str):
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, url)] = _raise

    def add_prefix(self, method: str, prefix: str, *, status_code: int = 200, json=None):
        """Responde a cualquier URL que empiece con `prefix`."""
        self.prefix_routes.append((method, prefix, status_code, json))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, _base_url(request)))
        if route is None:
            for method, prefix, status_code, body in self.prefix_routes:
                if request.method == method and _base_url(request).startswith(prefix):
                    return httpx.Response(status_code, json=body)
            return httpx.Response(404, json={"message": "Not Found"})
        return route(request)

    def calls_to(self, url: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.calls
            if _base_url(r).startswith(url) and (method is None or r.method == method)
        ]
