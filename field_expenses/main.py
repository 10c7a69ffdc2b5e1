import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import init_logging, request_context_middleware
from .db.dal import Database
from .db.migrate import apply_migrations
from .core import errors
from .routers import (
    expenses,
    health,
    limits,
    missions,
    receipts,
    reports,
    users,
)


def create_app(settings_override: Settings | None = None) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp DB). Falls back to cached get_settings().
    """
    settings = settings_override or get_settings()
    init_logging(debug=settings.debug)
    logger = logging.getLogger("field_expenses")

    # Ensure database schema (idempotent) so test-injected fresh DBs have tables
    try:
        apply_migrations(settings.db_path)  # type: ignore[arg-type]
    except Exception:
        logger.exception("failed to apply migrations on startup")
        raise

    if settings.bootstrap_admin_id:
        Database(settings.db_path).ensure_admin(
            settings.bootstrap_admin_id,
            settings.bootstrap_admin_name,
            settings.bootstrap_admin_email
            or f"{settings.bootstrap_admin_id}@localhost",
        )
        logger.info(
            "bootstrap admin ensured",
            extra={"fields": {"user_id": settings.bootstrap_admin_id}},
        )

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version
    )
    app.state.settings = settings

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(errors.ExpenseDomainError, errors.domain_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(missions.router)
    app.include_router(expenses.router)
    app.include_router(limits.router)
    app.include_router(receipts.router)
    app.include_router(reports.router)

    if settings.receipts_base_url.startswith("/"):
        app.mount(
            settings.receipts_base_url,
            StaticFiles(directory=settings.receipts_dir),
            name="receipt-files",
        )

    @app.get("/")
    async def root():
        return {"message": "Field Expense Tracker API", "version": settings.version}

    return app
