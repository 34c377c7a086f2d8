"""
Health check endpoints.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.dependencies import get_backend, get_coordinator, get_db
from app.core.document_processor import ProcessingCoordinator
from app.core.llm_config import OllamaBackend

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    backend: OllamaBackend = Depends(get_backend),
) -> Any:
    """
    Health check endpoint.

    Returns:
        Database and model backend status
    """
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "error"

    ollama = await backend.check_health()
    healthy = database == "connected" and ollama["status"] == "healthy"
    return {
        "status": "healthy" if healthy else "degraded",
        "service": settings.PROJECT_NAME,
        "database": database,
        "ollama": ollama["status"],
    }


@router.get("/health/ollama")
async def ollama_health(backend: OllamaBackend = Depends(get_backend)) -> Any:
    """Model backend status and installed models."""
    return await backend.check_health()


@router.get("/health/processing")
def processing_health(coordinator: ProcessingCoordinator = Depends(get_coordinator)) -> Any:
    """Admission counters, job totals and vector index sizes."""
    return coordinator.stats()
