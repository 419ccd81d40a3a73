"""Main FastAPI application for Pagewise.

Entry point for the application. Configures:
- FastAPI app with settings
- CORS middleware
- Exception handlers
- Route registration
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_app_config, get_cors_config, get_settings, setup_logging
from dependencies import get_progress_store, get_reader_session
from responses import ResponseCode, error_dict, get_http_status
from router import router as api_router
from services.conversation import SessionBusyError, SessionClosedError
from services.reader import NoDocumentError, PageOutOfRangeError

# Setup logging
setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    # Startup
    logger.info("Starting Pagewise...")

    settings = get_settings()
    logger.info("Environment: %s", settings.environment)
    logger.info("LLM Model: %s", settings.llm_model)
    logger.info("Progress backend: %s", settings.progress_backend)

    progress_health = await get_progress_store().health_check()
    if progress_health.get("status") != "healthy":
        logger.error("Progress store unhealthy: %s", progress_health)
        raise RuntimeError(f"Progress store health check failed: {progress_health}")
    logger.info("✓ Progress store ready (latency: %sms)", progress_health.get("latency_ms"))

    logger.info("Pagewise started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Pagewise...")
    get_reader_session().close_document()


# Create FastAPI app with lifespan
app_config = get_app_config()
app = FastAPI(lifespan=lifespan, **app_config)

# Add CORS middleware
cors_config = get_cors_config()
app.add_middleware(CORSMiddleware, **cors_config)


# =============================================================================
# Middleware
# =============================================================================


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests for tracing."""
    request_id = str(uuid.uuid4())[:8]
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", None)

    first_error = exc.errors()[0] if exc.errors() else {}
    field_name = first_error.get("loc", ["unknown"])[-1]

    error_response = error_dict(
        code=ResponseCode.VALIDATION_ERROR,
        custom_message=f"Validation failed for field '{field_name}'",
        error_details={"validation_errors": exc.errors()},
        request_id=request_id,
    )

    return JSONResponse(status_code=422, content=error_response)


READER_ERROR_CODES: dict[type[Exception], ResponseCode] = {
    NoDocumentError: ResponseCode.DOCUMENT_NOT_FOUND,
    PageOutOfRangeError: ResponseCode.PAGE_OUT_OF_RANGE,
    SessionBusyError: ResponseCode.SESSION_BUSY,
    SessionClosedError: ResponseCode.DOCUMENT_NOT_FOUND,
}


async def reader_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map reading-session errors raised by handlers to structured responses."""
    request_id = getattr(request.state, "request_id", None)
    code = READER_ERROR_CODES[type(exc)]

    logger.warning("[%s] %s: %s", request_id, type(exc).__name__, exc)

    return JSONResponse(
        status_code=get_http_status(code),
        content=error_dict(code, custom_message=str(exc), request_id=request_id),
    )


for _exc_type in READER_ERROR_CODES:
    app.add_exception_handler(_exc_type, reader_exception_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    request_id = getattr(request.state, "request_id", None)

    if isinstance(exc.detail, dict) and "code" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)

    code_map = {
        404: ResponseCode.DOCUMENT_NOT_FOUND,
        405: ResponseCode.VALIDATION_ERROR,
        409: ResponseCode.SESSION_BUSY,
        413: ResponseCode.FILE_TOO_LARGE,
    }

    response_code = code_map.get(exc.status_code, ResponseCode.INTERNAL_ERROR)

    error_response = error_dict(
        code=response_code,
        custom_message=str(exc.detail),
        request_id=request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response)


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unhandled exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception("Unhandled exception: %s", exc)

    error_response = error_dict(
        code=ResponseCode.INTERNAL_ERROR,
        custom_message="An unexpected error occurred",
        error_details={"exception_type": type(exc).__name__},
        request_id=request_id,
    )

    return JSONResponse(status_code=500, content=error_response)


# =============================================================================
# Routes
# =============================================================================

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - shows API info."""
    return {
        "name": "Pagewise",
        "description": "PDF/EPUB reader with a spoiler-free reading assistant",
        "docs": "/api/docs",
        "health": "/api/health",
    }


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
