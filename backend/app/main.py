"""
Main Entry Point - FastAPI Application
Projet: SODIPAS (Gestion grossiste fruits)

Configure l'application FastAPI: middleware, routers, gestion des erreurs et cycle de vie.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import (
    AppException,
    AuthorizationError,
    CollaboratorError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)

# ------------------------------------------------------------
# Configuration du logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Cycle de vie de l'application.

    - Démarrage: vérifie la connexion à la base (et crée les tables si configuré)
    - Arrêt: ferme les connexions
    """
    logger.info("Démarrage de %s v%s", settings.app_name, settings.app_version)
    await init_db()
    logger.info("Application démarrée")

    yield

    logger.info("Arrêt de l'application...")
    await close_db()
    logger.info("Application arrêtée")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Gestion grossiste fruits SODIPAS - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
def error_response(exc: AppException) -> JSONResponse:
    """Réponse JSON {detail, error_code[, extra]} d'une erreur métier."""
    content = {"detail": exc.detail, "error_code": exc.error_code}
    if exc.extra:
        content["extra"] = exc.extra
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """NotFoundError → HTTP 404."""
    return error_response(exc)


@app.exception_handler(DuplicateError)
async def duplicate_exception_handler(request: Request, exc: DuplicateError) -> JSONResponse:
    """DuplicateError → HTTP 409."""
    return error_response(exc)


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """
    ValidationError → HTTP 422.

    L'opération n'a eu aucun effet.
    """
    return error_response(exc)


@app.exception_handler(PreconditionError)
async def precondition_exception_handler(request: Request, exc: PreconditionError) -> JSONResponse:
    """PreconditionError → HTTP 428."""
    return error_response(exc)


@app.exception_handler(ConflictError)
async def conflict_exception_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """ConflictError → HTTP 409."""
    return error_response(exc)


@app.exception_handler(AuthorizationError)
async def authorization_exception_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    """AuthorizationError → HTTP 403."""
    return error_response(exc)


@app.exception_handler(CollaboratorError)
async def collaborator_exception_handler(request: Request, exc: CollaboratorError) -> JSONResponse:
    """
    CollaboratorError → HTTP 503.

    La transaction a été annulée; le client peut réessayer.
    """
    logger.error("Collaborateur indisponible sur %s: %s", request.url.path, exc.detail)
    return error_response(exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestionnaire générique des exceptions non interceptées.

    Journalise avec la trace complète et renvoie HTTP 500.
    """
    logger.error("Exception non gérée: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Erreur interne du serveur", "error_code": "INTERNAL_SERVER_ERROR"},
    )


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="État de l'application",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Contrôle de l'état de l'application.

    Returns:
        dict: État de l'application
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
from app.api.v1 import api_v1_router  # noqa: E402

app.include_router(api_v1_router)
