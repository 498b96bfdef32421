import logging
import traceback
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi.errors import RateLimitExceeded

from prpay.core.config import settings
from prpay.core.exceptions import ConfigurationError
from prpay.api.v1 import api_router
from prpay.core.logging_config import setup_logging, RequestLoggingMiddleware
from prpay.core.rate_limiter import limiter, rate_limit_exceeded_handler
from prpay.core.shutdown import lifespan_manager, RequestTrackingMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

# Configure structured logging (JSON in production, colored in development)
setup_logging()
logger = logging.getLogger("prpay")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to all responses.
    """
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    success: bool = False
    error: str
    detail: str | None = None
    timestamp: str
    path: str | None = None


class HealthResponse(BaseModel):
    """Health check response format."""
    status: str
    service: str
    version: str
    environment: str
    timestamp: str
    checks: dict[str, bool]


app = FastAPI(
    title="PR Pay Agent API",
    description="Tool-calling agent for contractor records and payouts",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan_manager,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

_default_dev_origins = [
    "http://localhost:3000",
    "http://localhost:4001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:4001",
]
cors_origins = settings.ALLOWED_ORIGINS or _default_dev_origins


def get_cors_headers(request: Request) -> dict:
    """Get CORS headers based on request origin."""
    origin = request.headers.get("origin", "")
    if origin in cors_origins:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
        }
    return {}


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(exc)},
        headers=get_cors_headers(request),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler. In production, details are replaced by a reference id.
    """
    error_id = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")

    logger.error(
        f"Unhandled exception [{error_id}]: {exc}\n"
        f"Path: {request.url.path}\n"
        f"Method: {request.method}\n"
        f"Traceback: {traceback.format_exc()}"
    )

    headers = get_cors_headers(request)

    if settings.ENVIRONMENT.lower() == "production":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="Internal server error",
                detail=f"An unexpected error occurred. Reference ID: {error_id}",
                timestamp=datetime.utcnow().isoformat(),
                path=request.url.path,
            ).model_dump(),
            headers=headers,
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error=exc.__class__.__name__,
            detail=str(exc),
            timestamp=datetime.utcnow().isoformat(),
            path=request.url.path,
        ).model_dump(),
        headers=headers,
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTrackingMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router, prefix=settings.API_V1_STR)

# Exposes /metrics for Prometheus scraping
instrumentator = Instrumentator(
    should_group_status_codes=False,
    should_ignore_untemplated=True,
    should_respect_env_var=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/health", "/metrics"],
    inprogress_name="prpay_inprogress_requests",
    inprogress_labels=True,
)
instrumentator.instrument(app).expose(app, include_in_schema=False)


def configuration_checks() -> dict[str, bool]:
    return {
        "openai": not settings.missing_credentials("OPENAI_API_KEY"),
        "locus": not settings.missing_credentials("LOCUS_API_KEY"),
        "table_store": not settings.missing_credentials(*settings.table_store_credentials()),
        "github_oauth": not settings.missing_credentials("METORIAL_API_KEY", "GITHUB_SERVER_DEPLOYMENT_ID"),
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Liveness plus configuration checks. Returns "degraded" when an
    integration is not configured; the process itself is still healthy.
    """
    checks = configuration_checks()
    healthy = all(checks.values())
    if not healthy:
        logger.info(f"Health check degraded (unconfigured integrations): {checks}")

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        service="prpay-backend",
        version="1.0.0",
        environment=settings.ENVIRONMENT,
        timestamp=datetime.utcnow().isoformat(),
        checks=checks,
    )


@app.get("/")
async def root():
    return {"message": "Welcome to the PR Pay Agent API"}
