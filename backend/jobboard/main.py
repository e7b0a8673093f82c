"""Remote Jobs — view-tracking backend."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from jobboard.config import get_settings
from jobboard.db.migrate import run_migrations
from jobboard.db.pool import close_pool, create_pool
from jobboard.routers import job_views
from jobboard.services.rate_limiter import RateLimiter
from jobboard.services.view_recorder import PgViewStore, ViewRecorder

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Starting %s v%s", settings.app.name, settings.app.version)

    # 1. Run DB migrations (job_views table)
    try:
        await run_migrations(settings.database)
    except Exception as exc:
        logger.error("Migration failed: %s (continuing without migration)", exc)

    # 2. Create asyncpg pool
    try:
        pool = await create_pool(settings.database)
        app.state.db_pool = pool
        logger.info("Database pool created")
    except Exception as exc:
        logger.error("Database connection failed: %s", exc)
        app.state.db_pool = None

    # 3. Rate limiter for job views + periodic sweep
    views = settings.views
    limiter = RateLimiter(
        max_requests=views.max_requests,
        window_sec=views.window_sec,
        sweep_interval_sec=views.sweep_interval_sec,
    )
    limiter.start()
    app.state.view_limiter = limiter

    # 4. View recorder (без пула — каждый просмотр вернёт persistence failure)
    store = PgViewStore(app.state.db_pool) if app.state.db_pool else None
    app.state.view_recorder = ViewRecorder(store, timeout_sec=views.persist_timeout_sec)

    logger.info(
        "Backend ready on %s:%s (views: %d per %ss)",
        settings.backend.host, settings.backend.port,
        views.max_requests, views.window_sec,
    )
    yield

    # Cleanup
    await limiter.stop()
    if app.state.db_pool:
        await close_pool(app.state.db_pool)
    logger.info("Shutdown complete")


app = FastAPI(
    title="Remote Jobs",
    version="0.4.2",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(job_views.router)


@app.get("/api/health")
async def health(request: Request):
    state = request.app.state
    limiter = getattr(state, "view_limiter", None)
    return {
        "status": "ok",
        "database": getattr(state, "db_pool", None) is not None,
        "tracked_keys": len(limiter) if limiter is not None else 0,
    }
