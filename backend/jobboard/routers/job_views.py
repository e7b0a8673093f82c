"""Роутеры учёта просмотров вакансий.

POST /api/public/job-views       — засчитать просмотр (rate limit → запись → cookie)
GET  /api/admin/job-views/stats  — сводка по просмотрам (admin)
"""
from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import ValidationError

from jobboard.auth import AuthContext, get_client_ip, require_admin
from jobboard.config import Settings, get_settings
from jobboard.db.queries.job_views import (
    fetch_daily_views,
    fetch_top_jobs,
    fetch_view_totals,
)
from jobboard.deps import get_pool, get_view_limiter, get_view_recorder
from jobboard.schemas.job_views import (
    DailyViewsOut,
    RecordViewIn,
    RecordViewOut,
    TopJobOut,
    ViewStatsOut,
)
from jobboard.services.access_log import log_access
from jobboard.services.anonymize import anonymize_ip
from jobboard.services.rate_limiter import RateLimiter
from jobboard.services.view_errors import ViewErrorKind
from jobboard.services.view_recorder import ViewRecorder

router = APIRouter(tags=["job-views"])

# ViewErrorKind -> (HTTP-код, detail)
ERROR_RESPONSES: dict[ViewErrorKind, tuple[int, str]] = {
    ViewErrorKind.INVALID_INPUT: (status.HTTP_400_BAD_REQUEST, "Job ID is required"),
    ViewErrorKind.RATE_LIMIT_EXCEEDED: (status.HTTP_429_TOO_MANY_REQUESTS, "Rate limit exceeded"),
    ViewErrorKind.PERSISTENCE_FAILURE: (
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to record job view",
    ),
}


def _view_error(kind: ViewErrorKind) -> HTTPException:
    status_code, detail = ERROR_RESPONSES[kind]
    return HTTPException(status_code=status_code, detail=detail)


# ---------------------------------------------------------------------------
# POST /api/public/job-views
# ---------------------------------------------------------------------------

@router.post("/api/public/job-views", response_model=RecordViewOut)
async def record_job_view(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    limiter: RateLimiter = Depends(get_view_limiter),
    recorder: ViewRecorder = Depends(get_view_recorder),
):
    cfg = settings.views
    client_ip = get_client_ip(request, settings.access)
    anon_ip = anonymize_ip(client_ip)
    user_agent = (request.headers.get("user-agent") or "unknown")[:cfg.max_user_agent_len]

    # Валидация до обращения к лимитеру
    try:
        body = RecordViewIn.model_validate(await request.json())
    except (ValueError, ValidationError):
        log_access(
            action="job_view", client_ip=anon_ip, user_agent=user_agent,
            result="invalid", detail=ViewErrorKind.INVALID_INPUT.value,
        )
        raise _view_error(ViewErrorKind.INVALID_INPUT)

    job_id = body.job_id

    # Rate limiting
    decision = limiter.admit(f"{anon_ip}-{job_id}")
    if not decision.admitted:
        log_access(
            action="job_view", client_ip=anon_ip, job_id=job_id,
            user_agent=user_agent, result="rate_limited", detail=decision.error.value,
        )
        raise _view_error(decision.error)

    existing_cookie_id = request.cookies.get(cfg.cookie_name) or None
    result = await recorder.record_view(job_id, client_ip, user_agent, existing_cookie_id)
    if not result.ok:
        log_access(
            action="job_view", client_ip=anon_ip, job_id=job_id,
            user_agent=user_agent, result="error", detail=result.error.value,
        )
        raise _view_error(result.error)

    log_access(
        action="job_view", client_ip=anon_ip, job_id=job_id,
        user_agent=user_agent, result="ok",
        detail="new_viewer" if result.is_new_cookie_id else "",
    )

    # viewer_id только для группировки в аналитике, не для авторизации
    if result.is_new_cookie_id:
        response.set_cookie(
            key=cfg.cookie_name,
            value=result.correlation_id,
            max_age=cfg.cookie_max_age_sec,
            httponly=True,
            secure=cfg.cookie_secure,
            samesite="lax",
            path="/",
        )
    return RecordViewOut()


# ---------------------------------------------------------------------------
# GET /api/admin/job-views/stats
# ---------------------------------------------------------------------------

@router.get("/api/admin/job-views/stats", response_model=ViewStatsOut)
async def job_view_stats(
    days: int = Query(7, ge=1, le=90),
    top: int = Query(5, ge=1, le=50),
    pool: asyncpg.Pool | None = Depends(get_pool),
    _: AuthContext = Depends(require_admin),
):
    if pool is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database unavailable",
        )

    totals = await fetch_view_totals(pool)
    top_jobs = await fetch_top_jobs(pool, top)
    daily = await fetch_daily_views(pool, days)
    return ViewStatsOut(
        total_views=totals["total_views"],
        unique_viewers=totals["unique_viewers"],
        top_jobs=[TopJobOut(**r) for r in top_jobs],
        daily_views=[DailyViewsOut(**r) for r in daily],
    )
