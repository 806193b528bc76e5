"""FastAPI application factory and server configuration."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ktree.config import get_settings
from ktree.db import base
from ktree.errors import KnowledgeTreeError, StoreCorruption
from ktree.middleware import AuthMiddleware, RateLimitMiddleware, RequestIDMiddleware
from ktree.routes import (
    me,
    nodes,
    progress,
    scores,
    students,
    submissions,
    trees,
)
from ktree.services.submissions import SubmissionService

logger = logging.getLogger(__name__)


async def run_startup_migrations() -> int:
    """Promote legacy drafts into submission history."""
    assert base.AsyncSessionLocal is not None
    async with base.AsyncSessionLocal() as session:
        return await SubmissionService(session).migrate_legacy_drafts()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup
    await base.init_db()
    if settings.migrate_legacy_drafts:
        await run_startup_migrations()

    yield

    # Shutdown
    await base.close_db()


async def knowledge_tree_error_handler(
    request: Request, exc: KnowledgeTreeError
) -> JSONResponse:
    """Render domain errors into the standard error envelope."""
    if isinstance(exc, StoreCorruption):
        logger.error(
            "Store corruption on %s %s: %s %s",
            request.method,
            request.url.path,
            exc.message,
            exc.details,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_routes(app: FastAPI) -> None:
    """Mount every router under its /v1 prefix."""
    app.include_router(trees.router, prefix="/v1/trees", tags=["trees"])
    app.include_router(nodes.router, prefix="/v1/nodes", tags=["nodes"])
    app.include_router(students.router, prefix="/v1/students", tags=["students"])
    app.include_router(scores.router, prefix="/v1/scores", tags=["scores"])
    app.include_router(
        submissions.router, prefix="/v1/submissions", tags=["submissions"]
    )
    app.include_router(progress.router, prefix="/v1/progress", tags=["progress"])
    app.include_router(me.router, prefix="/v1/me", tags=["me"])


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Middleware; the last one added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(KnowledgeTreeError, knowledge_tree_error_handler)

    # Routes
    register_routes(app)

    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "knowledge-tree"}

    # Root redirect
    @app.get("/")
    async def root():
        return JSONResponse(
            content={
                "service": settings.app_name,
                "version": "0.1.0",
                "docs": "/docs" if settings.debug else None,
            }
        )

    return app


app = create_app()
