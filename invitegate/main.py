"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invitegate.api.admin import router as admin_router
from invitegate.api.auth import router as auth_router
from invitegate.api.middleware import CORRELATION_HEADER, RequestContextMiddleware
from invitegate.api.routes import router as health_router
from invitegate.config import get_settings
from invitegate.exceptions import IdentityError, PersistenceError, UnauthorizedError
from invitegate.services.logging_service import configure_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    from invitegate.database import close_database, init_database
    from invitegate.services.housekeeping import HousekeepingScheduler

    # No fallback: the service must not run without its store
    database = await init_database()
    logger.info("database_initialized")

    housekeeping = HousekeepingScheduler(database)
    housekeeping.start()

    logger.info("application_started", log_level=settings.log_level)

    yield

    await housekeeping.stop()
    await close_database()

    logger.info("application_shutdown")


app = FastAPI(
    title="invitegate",
    description="Invite-gated identity and session service",
    version="0.1.0",
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 with the first field error."""
    correlation_id = _correlation_id(request)
    logger = structlog.get_logger()

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        message = first_error.get("msg", "Validation failed")
        detail = f"Field '{field}': {message}"
    else:
        detail = "Request validation failed"

    logger.warning("validation_error", correlation_id=correlation_id, detail=detail)

    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request format.", "detail": detail},
        headers={CORRELATION_HEADER: correlation_id},
    )


@app.exception_handler(IdentityError)
async def identity_exception_handler(request: Request, exc: IdentityError) -> JSONResponse:
    """Map the error taxonomy onto status codes and a human-readable message."""
    correlation_id = _correlation_id(request)
    logger = structlog.get_logger()

    if isinstance(exc, PersistenceError):
        logger.error(
            "persistence_error",
            correlation_id=correlation_id,
            error=repr(exc.__cause__),
            path=request.url.path,
        )
    else:
        logger.info(
            "request_rejected",
            correlation_id=correlation_id,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            path=request.url.path,
        )

    headers = {CORRELATION_HEADER: correlation_id}
    if isinstance(exc, UnauthorizedError):
        headers["WWW-Authenticate"] = "Bearer"

    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: never leak internals, always answer with a message."""
    structlog.get_logger().error(
        "unhandled_error",
        correlation_id=_correlation_id(request),
        error=repr(exc),
        path=request.url.path,
    )
    return JSONResponse(status_code=500, content={"message": "Internal server error."})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(health_router)


def run() -> None:
    """Console entry point."""
    settings = get_settings()
    uvicorn.run("invitegate.main:app", host=settings.host, port=settings.port)
