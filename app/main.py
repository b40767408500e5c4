"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from app.api.dependencies import close_shared_resources
from app.api.routes import health, recipes
from app.config import settings
from app.core.request_id import get_request_id
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import get_rate_limit_exceeded_handler, limiter
from app.middleware.security import SecurityHeadersMiddleware, install_http_middleware
from app.utils.exceptions import (
    ExtractionFailed,
    InvalidRequest,
    RecipeBookException,
    RecipeNotFound,
    SourceUnreachable,
    StorageError,
)
from app.utils.logging_config import setup_logging

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Recipe Book API",
    description="Recipe ingestion from web pages, photos and manual entry",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, get_rate_limit_exceeded_handler())

# (status, error message) per exception kind; first isinstance match wins.
_ERROR_STATUS = (
    (InvalidRequest, status.HTTP_400_BAD_REQUEST, "Invalid request"),
    (RecipeNotFound, status.HTTP_404_NOT_FOUND, "Recipe not found"),
    (SourceUnreachable, status.HTTP_502_BAD_GATEWAY, "Source unreachable"),
    (ExtractionFailed, status.HTTP_502_BAD_GATEWAY, "Recipe extraction failed"),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE, "Storage unavailable"),
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed messages."""
    request_id = get_request_id()
    logger.warning(
        "Validation error",
        extra={"path": request.url.path, "method": request.method, "errors": exc.errors()},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "detail": exc.errors(), "request_id": request_id},
    )


@app.exception_handler(RecipeBookException)
async def recipe_book_exception_handler(request: Request, exc: RecipeBookException) -> JSONResponse:
    """Map pipeline errors to HTTP responses."""
    request_id = get_request_id()

    status_code, error_message = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    for exc_type, code, message in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            status_code, error_message = code, message
            break

    log = logger.warning if status_code < 500 else logger.error
    log(
        f"Exception: {error_message}",
        extra={"path": request.url.path, "exception": str(exc), "exception_type": type(exc).__name__},
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_message, "detail": str(exc), "request_id": request_id},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred",
            "request_id": get_request_id(),
        },
    )


# Add middleware (order matters: the last one added runs first)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
install_http_middleware(app)

app.include_router(health.router)
app.include_router(recipes.router)


@app.on_event("startup")
async def startup_event():
    logger.info(
        "Recipe Book API starting up",
        extra={"storage_backend": settings.storage_backend, "log_level": settings.log_level},
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Recipe Book API shutting down")
    await close_shared_resources()


@app.get("/")
async def root():
    return {"name": "Recipe Book API", "version": "1.0.0", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_config=None)
