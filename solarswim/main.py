"""
SolarSwim Admin API - Main FastAPI Application
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from solarswim.config import settings
from solarswim.exceptions import (
    BackendError,
    NotFoundError,
    PartialBatchError,
    PricingValidationError,
)
from solarswim.api.v1 import pricing, memberships

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Backend API: {settings.backend_base_url}")

    yield

    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Base plan pricing and membership configuration for swim school locations",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    debug=settings.DEBUG
)


# ============================================================================
# MIDDLEWARE
# ============================================================================

logger.info(f"CORS configured for origins: {settings.CORS_ORIGINS}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/")
async def root():
    """
    Root endpoint - API status
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring
    """
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    }


# Include API routers
app.include_router(
    pricing.router,
    prefix=f"{settings.API_V1_PREFIX}/pricing",
    tags=["Base Plan Pricing"]
)

app.include_router(
    memberships.router,
    prefix=f"{settings.API_V1_PREFIX}/memberships",
    tags=["Membership Programs"]
)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def _dump_all(records) -> list:
    return [
        record.model_dump(mode="json", by_alias=True) if hasattr(record, "model_dump") else record
        for record in records
    ]


@app.exception_handler(PricingValidationError)
async def validation_error_handler(request: Request, exc: PricingValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Validation Error", "message": str(exc)}
    )


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=404,
        content={"error": "Not Found", "message": str(exc)}
    )


@app.exception_handler(PartialBatchError)
async def partial_batch_handler(request: Request, exc: PartialBatchError):
    """
    Some calls of a batch went through before another failed; the caller
    should refresh to see the persisted state.
    """
    logger.error(f"Partial batch failure: {exc.message}")
    return JSONResponse(
        status_code=502,
        content={
            "error": "Partial Failure",
            "message": exc.message,
            "succeeded": _dump_all(exc.succeeded),
            "failed": _dump_all(exc.failed)
        }
    )


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError):
    logger.error(f"Backend error ({exc.status_code}): {exc.message}")
    return JSONResponse(
        status_code=502,
        content={
            "error": "Backend Error",
            "message": exc.message,
            "backend_status": exc.status_code
        }
    )


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    """
    Custom 404 handler
    """
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": getattr(exc, "detail", None) or "The requested resource was not found",
            "path": str(request.url)
        }
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    """
    Custom 500 handler
    """
    logger.error(f"Internal server error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "solarswim.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
