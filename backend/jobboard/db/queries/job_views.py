from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any

import asyncpg


async def insert_job_view(
    pool: asyncpg.Pool,
    *,
    job_id: str,
    viewer_ip: str,
    viewer_cookie_id: str | None,
    user_agent: str,
    viewed_at: datetime,
) -> None:
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO job_views (job_id, viewer_ip, viewer_cookie_id, user_agent, viewed_at)
            VALUES ($1, $2, $3, $4, $5)
            """,
            job_id, viewer_ip, viewer_cookie_id, user_agent, viewed_at,
        )


async def fetch_view_totals(pool: asyncpg.Pool) -> dict[str, int]:
    async with pool.acquire() as conn:
        row = await conn.fetchrow("""
            SELECT count(*) AS total_views,
                   count(DISTINCT viewer_cookie_id) AS unique_viewers
            FROM job_views
        """)
    return dict(row)


async def fetch_top_jobs(pool: asyncpg.Pool, limit: int = 5) -> list[dict[str, Any]]:
    async with pool.acquire() as conn:
        rows = await conn.fetch("""
            SELECT job_id, count(*) AS view_count
            FROM job_views
            GROUP BY job_id
            ORDER BY view_count DESC, job_id
            LIMIT $1
        """, limit)
    return [dict(r) for r in rows]


def fill_daily_views(
    rows: list[dict[str, Any]], start: date, days: int,
) -> list[dict[str, Any]]:
    """Ровно `days` дней начиная со `start`, по возрастанию; пропуски = 0."""
    counts = {r["day"]: r["count"] for r in rows}
    result = []
    for i in range(days):
        day = start + timedelta(days=i)
        result.append({"day": day, "count": counts.get(day, 0)})
    return result


async def fetch_daily_views(
    pool: asyncpg.Pool, days: int = 7, today: date | None = None,
) -> list[dict[str, Any]]:
    """Просмотры по дням (UTC) за последние `days` дней, включая сегодня."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    start = today - timedelta(days=days - 1)
    since = datetime.combine(start, time.min, tzinfo=timezone.utc)

    async with pool.acquire() as conn:
        rows = await conn.fetch("""
            SELECT (viewed_at AT TIME ZONE 'UTC')::date AS day, count(*) AS count
            FROM job_views
            WHERE viewed_at >= $1
            GROUP BY day
        """, since)
    return fill_daily_views([dict(r) for r in rows], start, days)
