import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from secure_files.api import auth, files
from secure_files.core.config import Settings, get_settings
from secure_files.core.errors import AppError, AuthError, ValidationError
from secure_files.core.logging import configure_logging
from secure_files.core.security import TokenService
from secure_files.db.session import build_engine, build_session_factory, init_database
from secure_files.schemas.common import HealthStatus, error_response
from secure_files.services.storage import UploadStore

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(message).model_dump(),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.default_message
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", ValidationError.default_message)
    return f"{location}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return _error(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error(ValidationError.status_code, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one Settings instance."""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = build_engine(settings)
    store = UploadStore(settings)
    # Must exist before StaticFiles is mounted
    store.ensure_root()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            init_database(engine)
        except SQLAlchemyError:
            logger.critical("Database unreachable at startup", exc_info=True)
            raise
        if settings.uses_default_secret:
            logger.warning("SECRET_KEY is not set; using the development default")
        logger.info("%s started, uploads in %s", settings.PROJECT_NAME, store.root)
        yield
        engine.dispose()
        logger.info("%s stopped", settings.PROJECT_NAME)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="File upload and sharing with public/private visibility",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.tokens = TokenService(settings)
    app.state.store = store

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials="*" not in settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %.1fms",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Authentication"])
    app.include_router(files.router, prefix=settings.API_PREFIX, tags=["Files"])

    @app.get(f"{settings.API_PREFIX}/health", response_model=HealthStatus, tags=["Health"])
    def health():
        """Liveness check"""
        return HealthStatus(ok=True, time=datetime.now(timezone.utc))

    # Read-only static serving; StaticFiles never lists directories
    if settings.SERVE_UPLOADS:
        app.mount(store.url_prefix, StaticFiles(directory=str(store.root)), name="uploads")

    return app


def main() -> None:
    """Console entry point: fail fast if the database is down, then serve."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    engine = build_engine(settings)
    try:
        init_database(engine)
    except SQLAlchemyError:
        logger.critical("Database unreachable at startup", exc_info=True)
        sys.exit(1)
    finally:
        engine.dispose()

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
