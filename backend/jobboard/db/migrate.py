"""Idempotent migrations run on startup.

Creates the job_views table and its indexes. Every statement uses
IF NOT EXISTS, so running on each start is safe.
"""
from __future__ import annotations

import asyncio
import logging

import asyncpg

from jobboard.config import DatabaseConfig

logger = logging.getLogger(__name__)

MIGRATIONS = [
    """
    CREATE TABLE IF NOT EXISTS job_views (
        id               BIGSERIAL PRIMARY KEY,
        job_id           TEXT NOT NULL,
        viewer_ip        TEXT,
        viewer_cookie_id TEXT,
        user_agent       TEXT,
        viewed_at        TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS job_views_job_id_idx ON job_views (job_id)",
    "CREATE INDEX IF NOT EXISTS job_views_viewed_at_idx ON job_views (viewed_at)",
]


async def run_migrations(cfg: DatabaseConfig) -> None:
    try:
        conn: asyncpg.Connection = await asyncio.wait_for(
            asyncpg.connect(
                host=cfg.host,
                port=cfg.port,
                database=cfg.name,
                user=cfg.user,
                password=cfg.password,
            ),
            timeout=cfg.connect_timeout_sec,
        )
    except Exception as exc:
        logger.warning("Не удалось подключиться для миграции: %s", exc)
        return

    try:
        for sql in MIGRATIONS:
            try:
                await conn.execute(sql)
            except asyncpg.InsufficientPrivilegeError:
                logger.warning("Нет прав для выполнения: %s", sql.strip())
        logger.info("Миграции job_views применены")
    finally:
        await conn.close()
