"""
Main Entry Point - FastAPI Application
Progetto: Gestionale Impianti TVCC

Configura l'applicazione FastAPI con middleware, router, gestori
degli errori e lifecycle.

Formato degli errori restituiti al frontend:
    {"message": "...", "statusCode": 422, "errorCode": "...", "errors": {"campo": ["..."]}}
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import api_v1_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import AppException

# ------------------------------------------------------------
# Configurazione Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    error_code: str,
    errors: Optional[dict[str, list[str]]] = None,
    extra: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    """Costruisce la risposta JSON di errore."""
    content: dict[str, Any] = {
        "message": message,
        "statusCode": status_code,
        "errorCode": error_code,
    }
    if errors:
        content["errors"] = errors
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestisce il ciclo di vita dell'applicazione.

    - Startup: verifica la connessione al database
    - Shutdown: chiude le connessioni database
    """
    logger.info("Avvio %s v%s", settings.app_name, settings.app_version)
    await init_db()
    logger.info("Applicazione avviata con successo")

    yield

    logger.info("Arresto applicazione in corso...")
    await close_db()
    logger.info("Applicazione arrestata")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Gestionale per installatori di impianti TVCC - Backend API",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Gestore per tutte le eccezioni applicative.

    Usa status_code ed error_code dell'eccezione; gli errori per campo
    passati in extra["errors"] sono esposti come "errors".
    """
    extra = dict(exc.extra or {})
    errors = extra.pop("errors", None)

    if exc.status_code >= 500:
        logger.error("Errore applicativo su %s: %s", request.url.path, exc.detail)
    else:
        logger.info(
            "Richiesta rifiutata %s %s: %s (%s)",
            request.method,
            request.url.path,
            exc.error_code,
            exc.detail,
        )

    return error_response(exc.status_code, exc.detail, exc.error_code, errors, extra)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Gestore per gli errori di validazione Pydantic dei dati in input.

    Raggruppa i messaggi per campo, come atteso dai form del frontend.
    """
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "__root__"
        errors.setdefault(field, []).append(error.get("msg", "Valore non valido"))

    return error_response(422, "Dati non validi", "REQUEST_VALIDATION_ERROR", errors)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestore generico per tutte le eccezioni non catturate.

    Converte l'eccezione in risposta HTTP 500 e logga l'errore.
    """
    logger.error("Eccezione non gestita su %s: %s", request.url.path, exc, exc_info=True)
    return error_response(500, "Errore interno del server", "INTERNAL_SERVER_ERROR")


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
    summary="Controlla lo stato dell'applicazione",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Endpoint per il controllo dello stato di salute.

    Returns:
        dict: Stato dell'applicazione
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
app.include_router(api_v1_router)
