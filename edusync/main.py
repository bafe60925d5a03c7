"""
EduSync - Main Application
Assessments, grading, student progress and instructor analytics
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorDatabase

from edusync import __version__, config
from edusync.analytics.router import router as analytics_router
from edusync.assessments.router import router as assessments_router
from edusync.auth.auth_utils import require_secret
from edusync.courses.router import router as courses_router
from edusync.db import create_indexes, db_manager, get_db
from edusync.errors import install_error_handlers
from edusync.logging_config import configure_logging, set_request_id
from edusync.progress.router import router as progress_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)
    require_secret()
    db_manager.connect()
    await create_indexes(db_manager.get_database())
    logger.info("EduSync %s started", __version__)
    try:
        yield
    finally:
        db_manager.disconnect()


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="EduSync Assessment Service",
        version=__version__,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_id(rid)
        try:
            response = await call_next(request)
        finally:
            set_request_id(None)
        response.headers["X-Request-ID"] = rid
        return response

    install_error_handlers(app)

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(courses_router)
    app.include_router(assessments_router)
    app.include_router(progress_router)
    app.include_router(analytics_router)

    @app.get("/health", tags=["System"])
    async def health(db: AsyncIOMotorDatabase = Depends(get_db)):
        try:
            await db.command("ping")
            database = "UP"
        except Exception:
            logger.exception("Database ping failed")
            database = "DOWN"
        return {
            "status": "UP",
            "database": database,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
