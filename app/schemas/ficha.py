"""
Schemas Pydantic del registro de identidad, de las respuestas de los
proveedores y de la respuesta del endpoint de generación.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

NO_DISPONIBLE = "NO DISPONIBLE"


class Ubicacion(BaseModel):
    """Códigos de ubigeo y código postal."""

    model_config = ConfigDict(extra="ignore")

    ubigeo_reniec: str | None = None
    ubigeo_inei: str | None = None
    ubigeo_sunat: str | None = None
    codigo_postal: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _numbers_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class Imagenes(BaseModel):
    """Imágenes embebidas en base64 (o None)."""

    model_config = ConfigDict(extra="ignore")

    foto: str | None = None
    firma: str | None = None
    huella_izquierda: str | None = None
    huella_derecha: str | None = None


class IdentityRecord(BaseModel):
    """
    Registro canónico de identidad.

    Los alias son las claves del proveedor primario; el proveedor secundario
    se normaliza a esta misma forma. Solo el DNI es obligatorio.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    nu_dni: str = Field(..., alias="nuDni", examples=["12345678"])

    # Nombres
    ape_paterno: str | None = Field(None, alias="apePaterno", examples=["PEREZ"])
    ape_materno: str | None = Field(None, alias="apeMaterno", examples=["GOMEZ"])
    ap_casada: str | None = Field(None, alias="apCasada")
    pre_nombres: str | None = Field(None, alias="preNombres", examples=["JUAN"])

    # Datos personales
    sexo: str | None = None
    estado_civil: str | None = Field(None, alias="estadoCivil")
    estatura: str | None = None
    grado_instruccion: str | None = Field(None, alias="gradoInstruccion")
    de_restriccion: str | None = Field(None, alias="deRestriccion")
    dona_organos: str | None = Field(None, alias="donaOrganos")

    # Fechas
    fe_nacimiento: str | None = Field(None, alias="feNacimiento")
    fe_emision: str | None = Field(None, alias="feEmision")
    fe_inscripcion: str | None = Field(None, alias="feInscripcion")
    fe_caducidad: str | None = Field(None, alias="feCaducidad")
    fe_fallecimiento: str | None = Field(None, alias="feFallecimiento")
    fe_actualizacion: str | None = Field(None, alias="feActualizacion")

    # Padres
    nom_padre: str | None = Field(None, alias="nomPadre")
    nom_madre: str | None = Field(None, alias="nomMadre")

    # Dirección
    des_direccion: str | None = Field(None, alias="desDireccion")
    depa_direccion: str | None = Field(None, alias="depaDireccion")
    prov_direccion: str | None = Field(None, alias="provDireccion")
    dist_direccion: str | None = Field(None, alias="distDireccion")
    ubicacion: Ubicacion = Field(default_factory=Ubicacion)

    # Otros datos
    pais: str | None = None
    gp_votacion: str | None = Field(None, alias="gpVotacion")
    telefono: str | None = None
    email: str | None = None
    multas_electorales: str | None = Field(None, alias="multasElectorales")
    multa_admin: str | None = Field(None, alias="multaAdmin")
    cancelacion: str | None = None

    imagenes: Imagenes = Field(default_factory=Imagenes)

    @field_validator("ubicacion", "imagenes", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return {} if value is None else value

    @field_validator(
        "nu_dni", "estatura", "multas_electorales", "multa_admin", "telefono",
        mode="before",
    )
    @classmethod
    def _numbers_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def apellidos(self) -> str:
        parts = [self.ape_paterno, self.ape_materno, self.ap_casada]
        return " ".join(p for p in parts if p)


# ── Proveedores ──────────────────────────────────────


class SecondaryResponse(BaseModel):
    """Respuesta del proveedor secundario (texto libre en `message`)."""

    model_config = ConfigDict(extra="ignore")

    status: str | None = None
    dni: str | None = None
    message: str | None = None
    urls: dict[str, str] = Field(default_factory=dict)

    @field_validator("urls", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return {} if value is None else value

    @field_validator("dni", mode="before")
    @classmethod
    def _numbers_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def is_ok(self) -> bool:
        return (self.status or "").lower() == "ok" and bool((self.message or "").strip())


# ── Respuesta del endpoint ───────────────────────────


class FichaFields(BaseModel):
    dni: str


class FichaUrls(BaseModel):
    FILE: str = Field(..., description="URL de descarga de la ficha")


class FichaResponse(BaseModel):
    """Respuesta de /generar-ficha."""

    model_config = ConfigDict(populate_by_name=True)

    bot: str
    chat_id: int
    date: str
    fields_: FichaFields = Field(..., alias="fields")
    from_id: int
    message: str
    parts_received: int = 1
    urls: FichaUrls
