"""
FastAPI application for the fact-finder intake service.

Provides endpoints for:
- Uploading PDF fact-finders into storage with a tracked extraction record
- Retrieving extraction records
- Validating and submitting quote payloads to the RPA webhook
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .exceptions import FactFinderError, InvalidInputError
from .models import ErrorResponse, HealthResponse
from .routers import extractions, quotes, upload
from .webhook import format_location

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Fact-Finder Intake Service...")
    if not settings.webhook_url:
        logger.warning("WEBHOOK_URL is not set; quotes will be recorded but not delivered")
    yield
    logger.info("Shutting down Fact-Finder Intake Service...")


# Create FastAPI application
app = FastAPI(
    title="Fact-Finder Intake API",
    description="PDF fact-finder intake and RPA quote submission",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for the review frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(status="healthy", message="Fact-Finder Intake API is running", version=__version__)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy", version=__version__)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(upload.router)
app.include_router(extractions.router)
app.include_router(quotes.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(FactFinderError)
async def fact_finder_error_handler(request: Request, exc: FactFinderError):
    """Render categorized errors as a JSON body with the matching status."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.category, request.url.path, exc.message)
    body = ErrorResponse(
        error=exc.category,
        detail=exc.message,
        errors=getattr(exc, "errors", None),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests in the same shape as service errors."""
    errors = []
    for error in exc.errors():
        loc = tuple(error["loc"])
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        location = format_location(loc)
        errors.append(f"{location}: {error['msg']}" if location else error["msg"])
    body = ErrorResponse(
        error=InvalidInputError.category,
        detail="Request validation failed",
        errors=errors,
    )
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Hide internal details of anything that escaped the services."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "detail": "Internal server error"},
    )
