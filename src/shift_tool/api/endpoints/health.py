"""Health check endpoint"""
import os

from fastapi import APIRouter
from sqlalchemy import text

from src.shift_tool.database import SessionLocal
from src.shift_tool.config import settings
from src.shift_tool.services.shift_import import IMPORT_SESSIONS

router = APIRouter()


@router.get("/health")
def health_check():
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {e}"

    error_dir = settings.IMPORT_ERROR_DIR
    error_dir_ok = os.path.isdir(error_dir) and os.access(error_dir, os.W_OK)

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "environment": settings.APP_ENV,
        "database": db_status,
        "import_sessions": len(IMPORT_SESSIONS),
        "error_dir_writable": error_dir_ok or not os.path.exists(error_dir),
    }
