"""Структурированный access-логгер для просмотров и admin-доступа.

Отдельный логгер 'jobboard.access' — легко фильтровать/перенаправить в файл.
"""
from __future__ import annotations

import logging

logger = logging.getLogger("jobboard.access")


def log_access(
    *,
    action: str,
    role: str = "anonymous",
    client_ip: str = "",
    job_id: str = "",
    user_agent: str = "",
    result: str = "ok",
    detail: str = "",
) -> None:
    """Записать access-событие в структурированный лог."""
    logger.info(
        "action=%s role=%s ip=%s job=%s ua=%s result=%s detail=%s",
        action, role, client_ip, job_id, user_agent, result, detail,
    )
