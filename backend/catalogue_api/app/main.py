from __future__ import annotations

import logging
import asyncio

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.catalogue_api.app.api import router as duplicates_router
from backend.catalogue_api.app.errors import DuplicateResolutionError
from backend.common.db import db_settings
from backend.common.logging_utils import configure_logging
from backend.common.config import get_settings

configure_logging(service_name="catalogue_api")
logger = logging.getLogger("catalogue_api")

# Initialize settings to validate configuration early
try:
    settings = get_settings()
    logger.info("API server configured with CATALOGUE_API_KEY (length: %d)", len(settings.catalogue_api_key))
except Exception as e:
    logger.error("Failed to initialize settings: %s", e)
    raise

app = FastAPI(title="Device Catalogue Duplicates API", version="0.1.0")
app.include_router(duplicates_router)


@app.exception_handler(DuplicateResolutionError)
async def duplicate_resolution_error_handler(request: Request, exc: DuplicateResolutionError):
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.on_event("startup")
async def startup_event():
    """Run database migrations on startup if configured."""
    if db_settings.run_db_migrations:
        try:
            from alembic.config import Config
            from alembic import command
            
            # The working directory is /app, so alembic.ini is at /app/backend/alembic.ini
            alembic_ini_path = "/app/backend/alembic.ini"
            
            logger.info("Running database migrations...")
            alembic_cfg = Config(alembic_ini_path)
            
            def run_upgrade():
                command.upgrade(alembic_cfg, "head")
                
            # Alembic is synchronous, keep it off the event loop
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, run_upgrade)
                
            logger.info("Database migrations completed successfully")
        except Exception as e:
            logger.error("Failed to run database migrations: %s", e, exc_info=True)


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/v1/health")
def v1_health_check():
    return {"status": "healthy"}
