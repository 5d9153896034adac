"""
FastAPI application factory
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from redemption.config import get_settings
from redemption.infrastructure.db.session import check_db_connection
from redemption.application.actions import error_result
from redemption.domain.errors import (
    AlreadyInTrashError,
    InvalidStateError,
    NotFoundError,
    NotInTrashError,
    PluginAccessError,
    UnknownEntityTypeError,
    ValidationError,
)
from redemption.api.v1 import (
    audit, auth, backup, documents, entities, finance, notifications, plugins, trash,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs any unhandled exception and answers with a generic 500"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("ERROR on %s %s", request.method, request.url.path)
            return JSONResponse({"success": False, "error": "Internal Server Error"}, status_code=500)


def _handler(status_code: int):
    async def handle(request: Request, exc):
        return JSONResponse(error_result(exc), status_code=status_code)
    return handle


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.SCHEDULER_ENABLED:
        from redemption.application.scheduler import start_scheduler, shutdown_scheduler
        start_scheduler()
        try:
            yield
        finally:
            shutdown_scheduler()
    else:
        yield


def create_app() -> FastAPI:
    """
    Application factory

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)

    # Lookup walks the MRO; the trash-state errors subclass both
    # NotFoundError and InvalidStateError and must map to 409
    app.add_exception_handler(ValidationError, _handler(422))
    app.add_exception_handler(AlreadyInTrashError, _handler(409))
    app.add_exception_handler(NotInTrashError, _handler(409))
    app.add_exception_handler(InvalidStateError, _handler(409))
    app.add_exception_handler(NotFoundError, _handler(404))
    app.add_exception_handler(UnknownEntityTypeError, _handler(404))
    app.add_exception_handler(PluginAccessError, _handler(403))

    app.include_router(auth.router)
    app.include_router(entities.router)
    app.include_router(trash.router)
    app.include_router(finance.router)
    app.include_router(notifications.router)
    app.include_router(backup.router)
    app.include_router(plugins.router)
    app.include_router(documents.router)
    app.include_router(audit.router)

    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "redemption.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
