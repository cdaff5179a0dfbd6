"""
CollabHub FastAPI application entry point.

Workspaces contain projects and projects contain tasks. Every request is
authenticated with a short-lived access token and authorized against the
membership tables at the level it touches.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text

from collabhub import __version__
from collabhub.api.errors import register_exception_handlers
from collabhub.config import get_settings
from collabhub.db.session import check_db_connection, engine

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Verify the database and token secrets before serving; release the pool on exit."""
    logger.info("collabhub_starting: version=%s", __version__)
    try:
        try:
            check_db_connection()
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        # Missing or identical JWT secrets must fail here, not on the first login.
        from collabhub.api.deps import get_token_manager

        get_token_manager()
        logger.info("collabhub_ready")
        yield
    finally:
        engine.dispose()
        logger.info("collabhub_stopped")


def _routers():
    from collabhub.api import admin, auth, notifications, projects, tasks, workspaces

    return [
        ("/api/auth", "auth", auth.router),
        ("/api/admin", "admin", admin.router),
        ("/api/workspaces", "workspaces", workspaces.router),
        ("/api/projects", "projects", projects.router),
        ("/api/tasks", "tasks", tasks.router),
        ("/api/notifications", "notifications", notifications.router),
    ]


def _database_connected() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("health_check_database_unreachable", exc_info=True)
        return False
    return True


def create_app() -> FastAPI:
    """Build the application: exception mapping, routers and the health check."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    register_exception_handlers(app)

    for prefix, tag, router in _routers():
        app.include_router(router, prefix=prefix, tags=[tag])

    @app.get("/health")
    def health():
        """Liveness plus database connectivity; 503 when the database is unreachable."""
        if _database_connected():
            return {"status": "ok", "version": __version__, "database": "connected"}
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "version": __version__, "database": "disconnected"},
        )

    return app


app = create_app()
