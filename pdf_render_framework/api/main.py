"""
Main application file for the PDF Render Framework API.

This file initializes the FastAPI application, sets up logging,
registers global exception handlers, and includes API routers.
It also defines a root endpoint for basic API information.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

# Import project-specific modules
from pdf_render_framework.api.routes import render_routes
from pdf_render_framework.core.exceptions import (
    PdfRenderFrameworkError,
    BinaryNotFoundError,
    ConfigurationError,
    RenderError,
    ResourceError,
    UnreachableError,
)
from pdf_render_framework.core.logger import setup_logging, get_logger
from pdf_render_framework.core.config import config_manager

# --- Logging Setup ---
# Initialize centralized logging as early as possible when the application starts.
try:
    setup_logging(config_manager)
    logger = get_logger(__name__)
    logger.info("Logging successfully initialized for FastAPI application.")
except Exception as e:
    # Fallback to Python's basic logging if `setup_logging` fails.
    import logging as py_logging
    py_logging.basicConfig(level=py_logging.WARNING, format="%(asctime)s - %(levelname)s - CRITICAL - Failed to setup custom logging: %(message)s")
    py_logging.critical(f"Failed to initialize custom logging via ConfigurationManager: {e}", exc_info=True)
    logger = py_logging.getLogger(__name__)


# --- FastAPI Application Initialization ---
app = FastAPI(
    title="PDF Render Framework API",
    description="API for rendering web pages to PDF with a headless Chrome/Chromium engine.",
    version="0.1.0"
)

# --- Global Exception Handlers ---
# Application errors are mapped to HTTP status codes by type; the most
# specific registered handler wins.

def _error_response(request: Request, exc: PdfRenderFrameworkError, status_code: int) -> JSONResponse:
    logger.error(
        f"{exc.__class__.__name__} caught: {exc.message} for request: {request.method} {request.url}",
        exc_info=False,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(BinaryNotFoundError)
@app.exception_handler(UnreachableError)
@app.exception_handler(ResourceError)
async def engine_unavailable_exception_handler(request: Request, exc: PdfRenderFrameworkError):
    """Handles failures to start or reach the browser engine with HTTP 503."""
    return _error_response(request, exc, status.HTTP_503_SERVICE_UNAVAILABLE)


@app.exception_handler(RenderError)
async def render_exception_handler(request: Request, exc: RenderError):
    """Handles a failed render job (navigation, readiness or capture) with HTTP 502."""
    return _error_response(request, exc, status.HTTP_502_BAD_GATEWAY)


@app.exception_handler(ConfigurationError)
async def configuration_exception_handler(request: Request, exc: ConfigurationError):
    """Handles invalid renderer options (e.g. a non-numeric paper size) with HTTP 400."""
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST)


@app.exception_handler(PdfRenderFrameworkError)
async def pdf_render_framework_exception_handler(request: Request, exc: PdfRenderFrameworkError):
    """
    Handles all other custom exceptions derived from `PdfRenderFrameworkError`.

    Returns:
        JSONResponse: A standardized JSON error response with HTTP 500.
    """
    logger.error(
        f"PdfRenderFrameworkError caught: {exc.__class__.__name__} - {exc.message} "
        f"for request: {request.method} {request.url}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"An application error occurred: {exc.message}"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handles Pydantic's `RequestValidationError` for request body, path, or query parameters.

    Returns:
        JSONResponse: A JSON response detailing the validation failures (HTTP 422).
    """
    logger.warning(
        f"RequestValidationError caught for: {request.method} {request.url}. Errors: {exc.errors()}",
        exc_info=False
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Request validation failed", "errors": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError):
    # `ctx` may hold exception instances that JSONResponse cannot encode.
    return [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """
    Handles any other unhandled Python exceptions with a generic HTTP 500 response.
    """
    logger.critical(
        f"Generic unhandled exception caught: {exc.__class__.__name__} - {str(exc)} "
        f"for request: {request.method} {request.url}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected server error occurred. Please contact support if the issue persists."},
    )


# --- API Router Inclusion ---
app.include_router(
    render_routes.router,
    prefix="/api/v1/render",
    tags=["Rendering"]
)


# --- Root Endpoint ---
@app.get("/", tags=["General"], summary="API Root Endpoint")
async def read_root():
    """Provides basic information about the API."""
    return {
        "message": "Welcome to the PDF Render Framework API",
        "version": app.version,
        "documentation_url": app.docs_url,
        "redoc_url": app.redoc_url
    }

# --- Main Execution Block (for development) ---
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Uvicorn server directly for local development/testing (not for production)...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
