from __future__ import annotations

import asyncio

import asyncpg

from jobboard.config import DatabaseConfig


async def create_pool(cfg: DatabaseConfig) -> asyncpg.Pool:
    return await asyncio.wait_for(
        asyncpg.create_pool(
            host=cfg.host,
            port=cfg.port,
            database=cfg.name,
            user=cfg.user,
            password=cfg.password,
            min_size=cfg.pool_min,
            max_size=cfg.pool_max,
        ),
        timeout=cfg.connect_timeout_sec,
    )


async def close_pool(pool: asyncpg.Pool) -> None:
    await pool.close()
