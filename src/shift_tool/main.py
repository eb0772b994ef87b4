"""Main FastAPI application"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from src.shift_tool.api.endpoints import health, shift_import
from src.shift_tool.config import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=logging.INFO if settings.is_production else logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info(f"Starting Shift Scheduler API in {settings.APP_ENV} environment")
    logger.info(
        f"Shift import: preview limit {settings.IMPORT_PREVIEW_LIMIT} rows, "
        f"upload limit {settings.CSV_MAX_UPLOAD_MB}MB, "
        f"sessions expire after {settings.IMPORT_SESSION_TTL_MINUTES} minutes"
    )
    
    yield
    
    logger.info("Shutting down Shift Scheduler API")


app = FastAPI(
    title="Shift Scheduler - Bulk Shift Import",
    description="Imports legacy schedule data as validated, conflict-free shifts",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(health.router, tags=["Health"])
app.include_router(shift_import.router, tags=["Import"])


@app.get("/")
def root():
    return {
        "message": "Shift Scheduler API",
        "environment": settings.APP_ENV,
        "docs": "/docs"
    }
