"""In-memory fixed-window rate limiter для POST /api/public/job-views.

Ключ — "{анонимизированный IP}-{job_id}". Окно фиксированное: первый
запрос открывает окно, счётчик полностью сбрасывается после window_sec.
Состояние живёт в процессе; при нескольких воркерах у каждого своя таблица.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from jobboard.services.view_errors import ViewErrorKind

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    ADMITTED = "admitted"
    RATE_LIMITED = "rate_limited"

    @property
    def admitted(self) -> bool:
        return self is Decision.ADMITTED

    @property
    def error(self) -> ViewErrorKind | None:
        return None if self.admitted else ViewErrorKind.RATE_LIMIT_EXCEEDED


@dataclass
class RateLimitEntry:
    count: int
    window_start: float


class RateLimiter:
    def __init__(
        self,
        max_requests: int = 10,
        window_sec: float = 3600,
        sweep_interval_sec: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_sec <= 0:
            raise ValueError("window_sec must be positive")
        if max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        if sweep_interval_sec is not None and sweep_interval_sec <= 0:
            raise ValueError("sweep_interval_sec must be positive")
        self.max_requests = max_requests
        self.window_sec = window_sec
        self.sweep_interval_sec = (
            window_sec if sweep_interval_sec is None else sweep_interval_sec
        )
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        # Один грубый lock на всю таблицу: admit и sweep короткие
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def admit(self, key: str, now: float | None = None) -> Decision:
        """Решить, засчитывать ли событие для ключа.

        Отказ не меняет состояние: упёршийся в лимит клиент
        не может сдвинуть начало окна, продолжая слать запросы.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if now is None:
            now = self._clock()

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now - entry.window_start >= self.window_sec:
                self._entries[key] = RateLimitEntry(count=1, window_start=now)
                return Decision.ADMITTED
            if entry.count < self.max_requests:
                entry.count += 1
                return Decision.ADMITTED
            return Decision.RATE_LIMITED

    def sweep(self, now: float | None = None) -> int:
        """Удалить ключи с истёкшим окном. Возвращает число удалённых."""
        if now is None:
            now = self._clock()
        with self._lock:
            stale = [
                k for k, e in self._entries.items()
                if now - e.window_start >= self.window_sec
            ]
            for k in stale:
                del self._entries[k]
        return len(stale)

    # ------------------------------------------------------------------
    # Периодическая очистка
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Запустить фоновую очистку. Требует работающий event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_sec)
            evicted = self.sweep()
            if evicted:
                logger.info(
                    "Rate limiter: удалено %d устаревших ключей, осталось %d",
                    evicted, len(self),
                )
