"""Виды ошибок учёта просмотров.

Сервисы возвращают ViewErrorKind как значение; HTTP-код выбирает роутер.
"""
from __future__ import annotations

from enum import Enum


class ViewErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    PERSISTENCE_FAILURE = "persistence_failure"
