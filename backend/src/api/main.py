"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.helpers.params import field_errors
from api.routers import auth, categories, comments, health, notes, tags
from core.config import get_settings
from core.errors import ApiError, DependencyError
from core.redis import RedisClient
from db.session import dispose_engine

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    logging.basicConfig(level=app_settings.log_level.upper(), format=LOG_FORMAT)

    # Startup: Connect to Redis. The API runs uncached if this fails.
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
        connect_timeout=app_settings.redis_connect_timeout,
    )
    await redis_client.connect()
    app.state.redis_client = redis_client

    yield

    # Shutdown: Clean up Redis and pooled database connections
    await redis_client.close()
    app.state.redis_client = None
    await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """Add rate limit headers to successful responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add rate limit headers to response."""
        response = await call_next(request)

        # Set by the RateLimit dependency. 429s carry their own headers.
        info = getattr(request.state, "rate_limit_info", None)
        if info:
            response.headers["X-RateLimit-Limit"] = str(info["limit"])
            response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
            response.headers["X-RateLimit-Reset"] = str(info["reset"])

        return response


def error_response(
    status_code: int,
    error: dict,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the failure envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


app_settings = get_settings()

app = FastAPI(
    title="Notes API",
    description="A notes and blogging API with categories, tags, comments and likes.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ApiError)
async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    """Domain, authorization, and rate limit errors."""
    return error_response(exc.status_code, exc.to_error_body(), exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Body and path validation failures, every field reported."""
    return error_response(
        400,
        {
            "code": "VALIDATION_ERROR",
            "message": "Validation failed",
            "details": field_errors(list(exc.errors())),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    _request: Request, exc: StarletteHTTPException,
) -> JSONResponse:
    """Unknown routes, wrong methods, and other framework-level errors."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(
        exc.status_code,
        {"code": code, "message": message},
        getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database failures: logged with the request, reported as a per-route code."""
    route = request.scope.get("route")
    route_name = getattr(route, "name", None) or "REQUEST"
    logger.error(
        "database_error",
        exc_info=exc,
        extra={
            "path": request.url.path,
            "method": request.method,
            "params": dict(request.path_params),
        },
    )
    error = DependencyError("A database error occurred", code=f"{route_name.upper()}_ERROR")
    return error_response(error.status_code, error.to_error_body())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    error = DependencyError()
    return error_response(error.status_code, error.to_error_body())


# Rate limit headers middleware (runs first, adds headers to successful responses)
app.add_middleware(RateLimitHeadersMiddleware)

# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(notes.router)
app.include_router(comments.router)
app.include_router(categories.router)
app.include_router(tags.router)
