"""ViewRecorder — запись просмотра вакансии после допуска rate limiter'ом.

Учёт просмотров — best-effort аналитика: ошибка хранилища не пробрасывается,
а возвращается как RecordResult с PERSISTENCE_FAILURE. Повторов нет,
счётчик лимитера не откатывается.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

import asyncpg

from jobboard.db.queries.job_views import insert_job_view
from jobboard.services.anonymize import anonymize_ip
from jobboard.services.view_errors import ViewErrorKind

logger = logging.getLogger(__name__)

# uuid4 = 36 символов; длиннее от клиента не принимаем
MAX_COOKIE_ID_LEN = 64


@dataclass(frozen=True)
class ViewEvent:
    job_id: str
    viewer_ip: str              # уже анонимизирован
    viewer_cookie_id: str
    user_agent: str
    viewed_at: datetime


@dataclass(frozen=True)
class RecordResult:
    correlation_id: str
    is_new_cookie_id: bool
    error: ViewErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ViewStore(Protocol):
    async def insert_view_event(self, event: ViewEvent) -> None: ...


class PgViewStore:
    """Append-only запись в таблицу job_views через asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def insert_view_event(self, event: ViewEvent) -> None:
        await insert_job_view(
            self._pool,
            job_id=event.job_id,
            viewer_ip=event.viewer_ip,
            viewer_cookie_id=event.viewer_cookie_id,
            user_agent=event.user_agent,
            viewed_at=event.viewed_at,
        )


def new_cookie_id() -> str:
    return str(uuid.uuid4())


class ViewRecorder:
    def __init__(self, store: ViewStore | None, timeout_sec: float = 5.0) -> None:
        self._store = store
        self.timeout_sec = timeout_sec

    async def record_view(
        self,
        job_id: str,
        caller_address: str,
        user_agent: str,
        existing_cookie_id: str | None = None,
    ) -> RecordResult:
        """Построить ViewEvent и отдать его в хранилище.

        correlation_id возвращается всегда: переданный клиентом без изменений
        или только что выпущенный. Его подлинность не проверяется.
        Слишком длинный id от клиента заменяется новым.
        """
        if existing_cookie_id and len(existing_cookie_id) > MAX_COOKIE_ID_LEN:
            existing_cookie_id = None
        is_new = not existing_cookie_id
        cookie_id = new_cookie_id() if is_new else existing_cookie_id

        event = ViewEvent(
            job_id=job_id,
            viewer_ip=anonymize_ip(caller_address),
            viewer_cookie_id=cookie_id,
            user_agent=user_agent,
            viewed_at=datetime.now(timezone.utc),
        )

        if self._store is None:
            logger.warning("Просмотр job=%s не записан: хранилище недоступно", job_id)
            return RecordResult(cookie_id, is_new, ViewErrorKind.PERSISTENCE_FAILURE)

        try:
            await asyncio.wait_for(
                self._store.insert_view_event(event), timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Просмотр job=%s не записан: таймаут %.1fs", job_id, self.timeout_sec,
            )
            return RecordResult(cookie_id, is_new, ViewErrorKind.PERSISTENCE_FAILURE)
        except Exception as exc:
            logger.error("Ошибка записи просмотра job=%s: %s", job_id, exc)
            return RecordResult(cookie_id, is_new, ViewErrorKind.PERSISTENCE_FAILURE)

        return RecordResult(cookie_id, is_new)
