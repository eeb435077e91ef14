"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_portal.api.auth import router as auth_router
from school_portal.api.middleware import CORRELATION_HEADER, CorrelationIdMiddleware
from school_portal.api.routes import router as health_router
from school_portal.api.students import router as students_router
from school_portal.api.users import router as users_router
from school_portal.config import get_settings
from school_portal.errors import AuthenticationError, PortalError
from school_portal.models.response import error_body
from school_portal.services.email_service import EmailService
from school_portal.services.logging_service import configure_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler: owns the pool, Redis and mailer."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    try:
        from school_portal.database import init_database, run_migrations

        app.state.db_pool = await init_database()
        applied = await run_migrations()
        logger.info("database_initialized", migrations_applied=applied)
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - account routes will fail",
        )

    try:
        from school_portal.services.redis_service import get_redis

        await get_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_initialization_failed",
            error=str(e),
            note="Continuing without Redis - login rate limiting is disabled",
        )

    app.state.email_service = EmailService(settings)
    if settings.smtp_host:
        await app.state.email_service.verify_configuration()
    else:
        logger.warning("smtp_not_configured", note="Welcome emails will fail")

    logger.info("application_started", log_level=settings.log_level)

    yield

    try:
        from school_portal.database import close_database

        await close_database()
    except Exception as e:
        logger.warning("database_close_failed", error=str(e))

    try:
        from school_portal.services.redis_service import close_redis

        await close_redis()
    except Exception as e:
        logger.warning("redis_close_failed", error=str(e))

    logger.info("application_shutdown")


app = FastAPI(
    title="School Portal API",
    description="Accounts, authentication and student provisioning",
    version="1.0.0",
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Map service errors to the response envelope."""
    correlation_id = _correlation_id(request)
    logger = structlog.get_logger()

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.message,
        path=request.url.path,
    )

    headers = {CORRELATION_HEADER: correlation_id}
    if isinstance(exc, AuthenticationError):
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors as 400 with the first problem."""
    correlation_id = _correlation_id(request)
    logger = structlog.get_logger()

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        detail = f"Field '{field}': {first_error.get('msg', 'Validation failed')}"
    else:
        detail = "Request validation failed"

    logger.warning("validation_error", detail=detail, path=request.url.path)

    return JSONResponse(
        status_code=400,
        content=error_body("Validation error", message=detail),
        headers={CORRELATION_HEADER: correlation_id},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Routing errors (404, 405) in the response envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers={**(exc.headers or {}), CORRELATION_HEADER: _correlation_id(request)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, return a generic 500."""
    structlog.get_logger().error(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=error_body("Internal Server Error"),
        headers={CORRELATION_HEADER: _correlation_id(request)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(auth_router)
app.include_router(students_router)
app.include_router(users_router)
app.include_router(health_router)
