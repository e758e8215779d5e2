"""
Point d'entrée de l'API LectureTrack.
Démarrage : uvicorn lecturetrack.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import lecturetrack.models  # noqa: F401, tables enregistrées dans Base.metadata avant les routers
from lecturetrack.config import settings
from lecturetrack.exceptions import DomainError
from lecturetrack.routers import notifications, supervisor, verification_requests
from lecturetrack.routers.errors import to_http
from lecturetrack.scheduler import scheduler, start_scheduler, stop_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Démarre le scheduler des notifications et des rappels, l'arrête à la fermeture."""
    logger.info("Démarrage de LectureTrack (%s)", settings.ENV)
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="LectureTrack API",
    description="Vérification des présences des lecturers et notifications multi-canal",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Le tableau de bord tourne en local pendant le développement ; les autres origines viennent de la config
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)

for module in (verification_requests, supervisor, notifications):
    app.include_router(module.router)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Filet pour une erreur métier qu'un router n'aurait pas traduite."""
    http_error = to_http(exc)
    return JSONResponse(status_code=http_error.status_code, content={"detail": http_error.detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Toute autre erreur devient un 500 qui repasse par CORSMiddleware."""
    logger.error("Exception non gérée sur %s %s : %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Une erreur interne est survenue."})


@app.get("/api/health", tags=["Santé"])
def health_check():
    return {
        "status": "ok",
        "service": "LectureTrack API",
        "version": app.version,
        "scheduler": "running" if scheduler.running else "stopped",
    }
