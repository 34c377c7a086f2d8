"""
Main FastAPI application.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError

from app.api.v1 import api_router, health
from app.core.config import settings
from app.core.dependencies import get_backend, get_coordinator
from app.core.exceptions import PipelineError
from app.db.base import engine
from app.models import Base
import logging

# Configure logging BEFORE creating the app
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s:\t%(name)s\t%(message)s',
    handlers=[
        logging.StreamHandler()  # Output to console
    ]
)
logging.getLogger("uvicorn").setLevel(logging.INFO)

logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Contract intelligence: document ingestion and RAG question answering on a local model",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Always apply middleware
cors_origins = settings.BACKEND_CORS_ORIGINS if settings.BACKEND_CORS_ORIGINS else ["*"]
logger.info(f"CORS enabled for origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(PipelineError)
async def pipeline_exception_handler(request: Request, exc: PipelineError):
    """
    Map pipeline errors to their HTTP status.

    Args:
        request: Request object
        exc: Pipeline exception

    Returns:
        JSON response with the error message and type
    """
    content = {"detail": exc.message, "error": type(exc).__name__}
    status_value = getattr(exc, "status", None)
    if status_value:
        content["status"] = status_value
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON response with error details
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle all unhandled exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        JSON response with error message
    """
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "message": str(exc)},
    )


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """
    Run on application startup.
    """
    logger.info(f"🚀 Starting {settings.PROJECT_NAME}")
    backend = get_backend()
    health_status = await backend.check_health()
    if health_status["status"] == "healthy":
        await backend.ensure_models()
        await backend.warmup()
    else:
        logger.warning(f"Ollama not available at startup: {health_status.get('error')}")
    logger.info("📚 Documentation available at: http://localhost:8000/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Run on application shutdown.
    """
    stats = get_coordinator().stats()
    if stats["in_flight"]:
        # Jobs cut off here stay in the processing state until reprocessed
        logger.warning(f"Shutting down with {stats['in_flight']} documents still processing")
    logger.info(f"👋 Shutting down {settings.PROJECT_NAME}")


@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint.

    Returns:
        Status message
    """
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "status": "healthy",
        "version": "1.0.0",
        "docs": "/docs",
    }


# Include API routers
app.include_router(health.router, tags=["Health"])
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
