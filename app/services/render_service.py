"""
Render de la ficha en PNG con Pillow.

Diseño fijo 1080x1920: marca de agua, ícono, dos columnas de datos,
foto y código QR a la derecha y pie de página. Los valores ausentes se
muestran como "-".
"""

import base64
import binascii
import io
import logging
import random

import httpx
import qrcode
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from qrcode.exceptions import DataOverflowError

from app.schemas.ficha import IdentityRecord

logger = logging.getLogger(__name__)

# ── Layout ───────────────────────────────────────────
WIDTH = 1080
HEIGHT = 1920
BACKGROUND = "#003366"
TEXT_COLOR = (255, 255, 255)
MARGIN = 50
CONTENT_TOP = 300
LINE_HEIGHT = 40
HEADING_SPACING = 50
LABEL_WIDTH = 250
PHOTO_SIZE = (350, 400)
ICON_WIDTH = 300
QR_SIZE = 250
QR_CAPTION = "Escanea el QR"

FOOTER_TEXT = (
    "Esta imagen es solo informativa. No representa un documento oficial "
    "ni tiene validez legal."
)


async def fetch_icon(client: httpx.AsyncClient, url: str) -> bytes | None:
    """Descarga el ícono de la ficha. Retorna None si no está disponible."""
    if not url:
        return None
    try:
        response = await client.get(url)
    except httpx.RequestError as exc:
        logger.warning(f"Error al cargar el icono: {exc}")
        return None
    if response.status_code != 200 or not response.content:
        logger.warning(f"Icono no disponible ({response.status_code}): {url}")
        return None
    return response.content


def make_qr(data: str) -> bytes | None:
    """Genera el código QR de `data` en PNG. Retorna None si no se puede generar."""
    if not data:
        return None
    try:
        image = qrcode.make(data)
    except (DataOverflowError, ValueError) as exc:
        logger.warning(f"Error al generar el código QR: {exc}")
        return None
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()


def _font(size: int) -> ImageFont.ImageFont:
    return ImageFont.load_default(size=size)


def _open_image(data: bytes | None) -> Image.Image | None:
    if not data:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning(f"Imagen inválida: {exc}")
        return None


def decode_base64_image(value: str | None) -> Image.Image | None:
    """Decodifica una imagen en base64. Retorna None si no es válida."""
    if not value:
        return None
    try:
        raw = base64.b64decode(value, validate=False)
    except (binascii.Error, ValueError) as exc:
        logger.warning(f"Base64 de imagen inválido: {exc}")
        return None
    return _open_image(raw)


class _Column:
    """Columna de texto con cursor vertical propio."""

    def __init__(self, draw: ImageDraw.ImageDraw, x: int, width: int, y: int, fonts: dict):
        self.draw = draw
        self.x = x
        self.width = width
        self.y = y
        self.fonts = fonts

    def heading(self, text: str) -> None:
        self.draw.text((self.x, self.y), text, font=self.fonts["heading"], fill=TEXT_COLOR)
        self.y += HEADING_SPACING

    def skip(self, amount: int = HEADING_SPACING) -> None:
        self.y += amount

    def field(self, label: str, value) -> None:
        self.draw.text((self.x, self.y), f"{label}:", font=self.fonts["bold"], fill=TEXT_COLOR)
        value_x = self.x + LABEL_WIDTH
        max_width = self.width - LABEL_WIDTH
        text = str(value) if value not in (None, "") else "-"
        new_y = draw_wrapped_text(
            self.draw, self.fonts["data"], value_x, self.y, max_width, text, LINE_HEIGHT
        )
        self.y = new_y - 10


def draw_wrapped_text(
    draw: ImageDraw.ImageDraw,
    font: ImageFont.ImageFont,
    x: int,
    y: int,
    max_width: int,
    text: str,
    line_height: int,
) -> int:
    """Dibuja `text` partiendo en palabras según `max_width`. Retorna la siguiente Y libre."""
    line = ""
    current_y = y
    for word in text.split(" "):
        candidate = word if not line else f"{line} {word}"
        if line and draw.textlength(candidate, font=font) > max_width:
            draw.text((x, current_y), line, font=font, fill=TEXT_COLOR)
            line = word
            current_y += line_height
        else:
            line = candidate
    draw.text((x, current_y), line.strip(), font=font, fill=TEXT_COLOR)
    return current_y + line_height


class CardRenderer:
    def __init__(self, watermark_text: str = "RENIEC", seed: int | None = None):
        self.watermark_text = watermark_text
        self.random = random.Random(seed)

    def _draw_watermark(self, canvas: Image.Image, font: ImageFont.ImageFont) -> None:
        for x in range(0, canvas.width, 200):
            for y in range(0, canvas.height, 100):
                tile = Image.new("RGBA", (100, 50), (0, 0, 0, 0))
                ImageDraw.Draw(tile).text(
                    (0, 0), self.watermark_text, font=font, fill=(255, 255, 255, 26)
                )
                tile = tile.rotate(self.random.uniform(-15, 15), expand=True)
                canvas.paste(tile, (x, y), tile)

    def _draw_header(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, icon: bytes | None, fonts: dict) -> None:
        image = _open_image(icon)
        if image is None:
            draw.text((MARGIN, 50), "Consulta Ciudadana", font=fonts["title"], fill=TEXT_COLOR)
            return
        image = image.convert("RGBA")
        height = max(1, round(image.height * ICON_WIDTH / image.width))
        image = image.resize((ICON_WIDTH, height))
        canvas.paste(image, ((canvas.width - ICON_WIDTH) // 2, 50), image)

    def _draw_qr(self, canvas: Image.Image, column: _Column, qr: bytes | None) -> None:
        image = _open_image(qr)
        if image is None:
            return
        # NEAREST conserva los módulos en blanco y negro puros
        image = image.convert("RGB").resize((QR_SIZE, QR_SIZE), Image.Resampling.NEAREST)
        x = column.x + (column.width - QR_SIZE) // 2
        canvas.paste(image, (x, column.y + 50))
        column.draw.text(
            (x, column.y + QR_SIZE + 60), QR_CAPTION, font=column.fonts["heading"], fill=TEXT_COLOR
        )

    def render(
        self,
        record: IdentityRecord,
        icon: bytes | None = None,
        qr: bytes | None = None,
    ) -> bytes:
        """Genera la ficha del registro y retorna los bytes PNG."""
        canvas = Image.new("RGB", (WIDTH, HEIGHT), BACKGROUND)
        draw = ImageDraw.Draw(canvas)
        fonts = {
            "title": _font(64),
            "heading": _font(32),
            "bold": _font(18),
            "data": _font(18),
        }

        self._draw_watermark(canvas, fonts["heading"])
        self._draw_header(canvas, draw, icon, fonts)

        column_width = WIDTH // 2 - MARGIN - 25
        left = _Column(draw, MARGIN, column_width, CONTENT_TOP, fonts)
        right = _Column(draw, WIDTH // 2 + 50, column_width, CONTENT_TOP, fonts)

        # Separador central
        draw.rectangle(
            (WIDTH // 2, CONTENT_TOP - 50, WIDTH // 2 + 1, HEIGHT - 150), fill=TEXT_COLOR
        )

        photo = decode_base64_image(record.imagenes.foto)
        if photo is not None:
            photo = photo.convert("RGB").resize(PHOTO_SIZE)
            photo_x = right.x + (right.width - PHOTO_SIZE[0]) // 2
            canvas.paste(photo, (photo_x, CONTENT_TOP))
            right.skip(PHOTO_SIZE[1] + HEADING_SPACING)

        left.heading("Datos Personales")
        left.field("DNI", record.nu_dni)
        left.field("Apellidos", record.apellidos)
        left.field("Prenombres", record.pre_nombres)
        left.field("Nacimiento", record.fe_nacimiento)
        left.field("Sexo", record.sexo)
        left.field("Estado Civil", record.estado_civil)
        left.field("Estatura", f"{record.estatura or '-'} cm")
        left.field("Grado Inst.", record.grado_instruccion)
        left.field("Restricción", record.de_restriccion or "NINGUNA")
        left.field("Donación", record.dona_organos)
        left.skip()

        left.heading("Información Adicional")
        left.field("Fecha Emisión", record.fe_emision)
        left.field("Fecha Inscripción", record.fe_inscripcion)
        left.field("Fecha Caducidad", record.fe_caducidad)
        left.field("Fecha Fallecimiento", record.fe_fallecimiento)
        left.field("Padre", record.nom_padre)
        left.field("Madre", record.nom_madre)
        left.skip()

        left.heading("Datos de Dirección")
        left.field("Dirección", record.des_direccion)
        left.field("Departamento", record.depa_direccion)
        left.field("Provincia", record.prov_direccion)
        left.field("Distrito", record.dist_direccion)
        left.skip()

        left.heading("Ubicación")
        left.field("Ubigeo Reniec", record.ubicacion.ubigeo_reniec)
        left.field("Ubigeo INEI", record.ubicacion.ubigeo_inei)
        left.field("Ubigeo Sunat", record.ubicacion.ubigeo_sunat)
        left.field("Código Postal", record.ubicacion.codigo_postal)

        right.heading("Otros Datos")
        right.field("País", record.pais)
        right.field("Grupo Votación", record.gp_votacion)
        right.field("Teléfono", record.telefono)
        right.field("Email", record.email)
        right.field("Multas Electorales", record.multas_electorales)
        right.field("Multa Admin", record.multa_admin)
        right.field("Fecha Actualización", record.fe_actualizacion)
        right.field("Cancelación", record.cancelacion)
        right.skip()

        self._draw_qr(canvas, right, qr)

        draw.text((MARGIN, HEIGHT - 100), FOOTER_TEXT, font=fonts["data"], fill=TEXT_COLOR)

        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        return buffer.getvalue()
