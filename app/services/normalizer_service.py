"""
Normalización de la respuesta del proveedor secundario.

El proveedor secundario devuelve un único `message` de texto con líneas
"ETIQUETA : valor". Aquí se convierte a IdentityRecord, la misma forma que
entrega el proveedor primario.
"""

import re

from app.core.exceptions import NormalizationError
from app.schemas.ficha import NO_DISPONIBLE, IdentityRecord, SecondaryResponse

# Etiquetas [GENDER], [DATE], etc.
_TAG_RE = re.compile(r"\[[^\]]*\]")

# Campo canónico (alias del primario) -> etiquetas aceptadas
_FIELD_LABELS: dict[str, tuple[str, ...]] = {
    "nuDni": ("DNI",),
    "preNombres": ("NOMBRES", "PRENOMBRES"),
    "sexo": ("GENERO", "GÉNERO", "SEXO"),
    "feNacimiento": ("FECHA NACIMIENTO", "FECHA DE NACIMIENTO", "NACIMIENTO"),
    "estadoCivil": ("ESTADO CIVIL",),
    "estatura": ("ESTATURA",),
    "gradoInstruccion": ("GRADO INSTRUCCION", "GRADO INSTRUCCIÓN", "GRADO DE INSTRUCCION"),
    "deRestriccion": ("RESTRICCION", "RESTRICCIÓN"),
    "feEmision": ("FECHA EMISION", "FECHA EMISIÓN", "FECHA DE EMISION"),
    "feInscripcion": ("FECHA INSCRIPCION", "FECHA INSCRIPCIÓN", "FECHA DE INSCRIPCION"),
    "feCaducidad": ("FECHA CADUCIDAD", "FECHA DE CADUCIDAD"),
    "nomPadre": ("PADRE",),
    "nomMadre": ("MADRE",),
    "desDireccion": ("DIRECCION", "DIRECCIÓN"),
    "depaDireccion": ("DEPARTAMENTO",),
    "provDireccion": ("PROVINCIA",),
    "distDireccion": ("DISTRITO",),
}

_UBICACION_LABELS: dict[str, tuple[str, ...]] = {
    "ubigeo_reniec": ("UBIGEO RENIEC",),
    "ubigeo_inei": ("UBIGEO INEI",),
    "ubigeo_sunat": ("UBIGEO SUNAT",),
    "codigo_postal": ("CODIGO POSTAL", "CÓDIGO POSTAL"),
}

_SURNAME_LABELS = ("APELLIDOS",)


def _clean_value(raw: str) -> str | None:
    value = _TAG_RE.sub("", raw).strip()
    return value or None


def extract_field(lines: list[str], labels: tuple[str, ...]) -> str | None:
    """
    Retorna el valor de la primera línea que empieza con alguna etiqueta.
    El valor es el texto tras el primer ':' sin etiquetas [..].
    Retorna None si ninguna línea coincide.
    """
    for line in lines:
        head = line.lstrip().upper()
        if head.startswith(labels) and ":" in line:
            return _clean_value(line.split(":", 1)[1])
    return None


def split_surnames(apellidos: str | None) -> tuple[str | None, str | None]:
    """
    Divide "PEREZ GOMEZ" en (paterno, materno).
    Apellidos compuestos no se detectan: solo se usan los dos primeros tokens.
    """
    if not apellidos:
        return None, None
    tokens = apellidos.split()
    paterno = tokens[0] if tokens else None
    materno = tokens[1] if len(tokens) > 1 else None
    return paterno, materno


def normalize_secondary(response: SecondaryResponse, dni: str) -> IdentityRecord:
    """
    Convierte la respuesta del proveedor secundario en un IdentityRecord.

    Los campos que el secundario no maneja (donación, fallecimiento) quedan
    como NO DISPONIBLE. La foto no se resuelve aquí: la URL de
    `response.urls["IMAGE"]` la descarga el orquestador.

    Raises:
        NormalizationError: si el mensaje no contiene ninguna etiqueta conocida.
    """
    lines = (response.message or "").splitlines()

    data: dict = {}
    recognized = 0

    for field, labels in _FIELD_LABELS.items():
        value = extract_field(lines, labels)
        if value is not None:
            recognized += 1
        data[field] = value

    ubicacion = {}
    for field, labels in _UBICACION_LABELS.items():
        value = extract_field(lines, labels)
        if value is not None:
            recognized += 1
        ubicacion[field] = value

    apellidos = extract_field(lines, _SURNAME_LABELS)
    if apellidos is not None:
        recognized += 1

    if recognized == 0:
        raise NormalizationError(
            "El mensaje del proveedor secundario no tiene campos reconocibles",
            response_data={"message": response.message},
        )

    data["apePaterno"], data["apeMaterno"] = split_surnames(apellidos)
    data["nuDni"] = data["nuDni"] or response.dni or dni
    data["donaOrganos"] = NO_DISPONIBLE
    data["feFallecimiento"] = NO_DISPONIBLE
    data["ubicacion"] = ubicacion

    return IdentityRecord(**data)
