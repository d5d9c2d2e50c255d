"""Rental Inspections - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rental_inspections import __version__
from rental_inspections.core.config import get_settings
from rental_inspections.core.database import engine, init_models
from rental_inspections.core.errors import InspectionWorkflowError
from rental_inspections.routers import disputes_router, inspections_router
from rental_inspections.services.workflow import drain_notifications

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    if settings.auto_create_tables:
        await init_models()
    yield
    # Shutdown
    await drain_notifications()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Pre- and post-rental condition inspections, discrepancy reports and disputes.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",")]
logger.info(f"[APP] CORS configured with origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


@app.exception_handler(InspectionWorkflowError)
async def workflow_error_handler(request: Request, exc: InspectionWorkflowError):
    """Map structured workflow errors to HTTP responses."""
    if exc.status_code >= 500:
        logger.error(f"[APP] {request.method} {request.url.path} failed: {exc.kind} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


# API v1 routers
app.include_router(inspections_router, prefix=settings.api_v1_prefix)
app.include_router(disputes_router, prefix=settings.api_v1_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else "Disabled in production",
    }
