"""
Point d'entrée principal de l'API de la borne de pointage.
Démarrage : uvicorn checker.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import checker.models  # noqa: F401  enregistre tous les modèles dans Base.metadata avant les routers
from checker.routers import backups, fire_drills, maintenance, scans, users
from checker.scheduler import start_scheduler, stop_scheduler
from checker.services.debounce import DebounceRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Cycle de vie de l'application : crée le registre anti double-scan
    et démarre / arrête le scheduler APScheduler.
    """
    app.state.debounce_registry = DebounceRegistry()
    start_scheduler()
    yield
    stop_scheduler()
    app.state.debounce_registry.clear()


app = FastAPI(
    title="Checker API",
    description="API de la borne de pointage par badge (entrées / sorties, appel incendie, sauvegardes)",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# CORS : la borne est servie depuis localhost en développement (à restreindre en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Device-Id"],
)


app.include_router(scans.router)
app.include_router(users.router)
app.include_router(fire_drills.router)
app.include_router(backups.router)
app.include_router(maintenance.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour que la réponse 500
    passe par CORSMiddleware et reste lisible par la borne.
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Une erreur interne est survenue."},
    )


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "Checker API", "version": "0.1.0"}
