"""
Router principal de la API.
Agrupa los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from app.api.v1.ficha import router as ficha_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    ficha_router,
    tags=["Fichas DNI"],
)
