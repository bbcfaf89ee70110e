"""
Module: main.py
Description: FastAPI application entry point for the gallery gateway.

Initializes the FastAPI application with all routes, middleware and
error handlers, and exposes the Mangum handler used by AWS Lambda.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from mangum import Mangum

from gallery_gateway.config.settings import get_settings
from gallery_gateway.handlers.dependencies import get_request_id
from gallery_gateway.handlers.gallery import router as gallery_router
from gallery_gateway.handlers.records import router as records_router
from gallery_gateway.models.response import (
    ALLOWED_HEADERS,
    ErrorResponse,
    json_response,
)
from gallery_gateway.utils.errors import AuthError, GatewayError, UpstreamError
from gallery_gateway.utils.logger import configure_logging, get_logger

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

HTTP_ERROR_KINDS = {
    400: "ValidationError",
    404: "NotFoundError",
    405: "MethodNotAllowed",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log application startup and shutdown."""
    logger.info(
        "Starting gallery gateway",
        version=settings.app_version,
        stage=settings.stage,
        region=settings.aws_region
    )
    yield
    logger.info("Shutting down gallery gateway")


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Token-authenticated gateway for saved dog images",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Answers browser preflights; every other response sets its CORS headers itself
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_allow_origin],
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=ALLOWED_HEADERS.split(","),
)

# Include routers
app.include_router(gallery_router)
app.include_router(records_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Unauthenticated; returns basic application information only.
    """
    logger.info("Health check requested")

    return {
        "status": "ok",
        "message": "Gallery gateway is healthy",
        "version": settings.app_version,
        "environment": settings.stage
    }


# Global exception handlers
@app.exception_handler(AuthError)
async def auth_exception_handler(request: Request, exc: AuthError):
    """
    Translate token rejections into 401 responses.

    Only the error kind is returned; the detailed reason was logged by
    the verifier.
    """
    body = ErrorResponse(
        message="Unauthorized",
        error=exc.kind.value,
        request_id=get_request_id(request)
    )
    return json_response(body, exc.status_code, settings.cors_allow_origin)


@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Translate gateway errors into their status code and safe message."""
    log = logger.error if isinstance(exc, UpstreamError) else logger.warning
    log(
        "Request failed",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.message,
        path=request.url.path,
        method=request.method
    )

    body = ErrorResponse(
        message=exc.message,
        error=type(exc).__name__,
        request_id=get_request_id(request)
    )
    return json_response(body, exc.status_code, settings.cors_allow_origin)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed query parameters or bodies are 400s."""
    errors = exc.errors()
    logger.warning(
        "Request validation failed",
        errors=[error.get('msg') for error in errors],
        path=request.url.path,
        method=request.method
    )

    body = ErrorResponse(
        message=errors[0]['msg'] if errors else "Invalid request",
        error="ValidationError",
        request_id=get_request_id(request)
    )
    return json_response(body, 400, settings.cors_allow_origin)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global HTTP exception handler.

    Covers routing errors such as unknown paths (404) and unsupported
    methods (405).
    """
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method
    )

    body = ErrorResponse(
        message=str(exc.detail),
        error=HTTP_ERROR_KINDS.get(exc.status_code, "HTTPError"),
        request_id=get_request_id(request)
    )
    return json_response(body, exc.status_code, settings.cors_allow_origin)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Logs unexpected exceptions and returns a generic 500.
    """
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )

    body = ErrorResponse(
        message="Internal server error",
        error="InternalError",
        request_id=get_request_id(request)
    )
    return json_response(body, 500, settings.cors_allow_origin)


# Lambda handler
handler = Mangum(app, lifespan="off")
