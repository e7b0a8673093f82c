from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    import asyncpg

    from jobboard.services.rate_limiter import RateLimiter
    from jobboard.services.view_recorder import ViewRecorder


def get_pool(request: Request) -> asyncpg.Pool | None:
    return request.app.state.db_pool


def get_view_limiter(request: Request) -> RateLimiter:
    return request.app.state.view_limiter


def get_view_recorder(request: Request) -> ViewRecorder:
    return request.app.state.view_recorder
