from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse

from config import settings
from database.database import dispose_engine
from database.run_migrations import get_migration_status, run_migrations
from logging_config import setup_logging

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Falha de migration impede a API de subir
    await run_migrations()
    yield
    await dispose_engine()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)
app.add_middleware(GZipMiddleware, minimum_size=500)


@app.get("/")
async def root():
    return {
        "message": "API InfraDB",
        "version": settings.VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """
    Endpoint de verificação de saúde da API
    Usado para verificar se a API está online e respondendo
    """
    return {
        "status": "ok",
        "message": "API is running",
        "version": settings.VERSION,
        "dialect": settings.DB_DIALECT,
    }


@app.get("/admin/migrations")
async def migrations_status():
    """Status das migrations (aplicadas e pendentes), em ordem de catálogo."""
    statuses = await get_migration_status()
    return {
        "applied": sum(1 for status in statuses if status.applied),
        "pending": sum(1 for status in statuses if not status.applied),
        "migrations": [status.model_dump(mode="json") for status in statuses],
    }
