"""Transient user-facing notices (toasts).

The UI layer renders whatever lands here; the core only records notices and
fans them out to subscribers.
"""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from marketplace.core.constants import MAX_NOTICES

logger = logging.getLogger(__name__)


class NoticeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


_LOG_LEVELS = {
    NoticeKind.SUCCESS: logging.INFO,
    NoticeKind.INFO: logging.INFO,
    NoticeKind.ERROR: logging.WARNING,
}


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    title: str
    message: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "text1": self.title,
            "text2": self.message,
            "created_at": self.created_at.isoformat(),
        }


Subscriber = Callable[[Notice], None]


class Notifier:
    """Keeps the last ``max_notices`` notices and calls subscribers."""

    def __init__(self, max_notices: int = MAX_NOTICES):
        self._notices: deque[Notice] = deque(maxlen=max_notices)
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def show(self, kind: NoticeKind | str, title: str, message: str = "") -> Notice:
        notice = Notice(kind=NoticeKind(kind), title=title, message=message)
        self._notices.append(notice)
        logger.log(_LOG_LEVELS[notice.kind], "Notice [%s] %s: %s", notice.kind.value, title, message)
        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception as exc:
                logger.error("Notice subscriber failed: %s", exc)
        return notice

    def success(self, title: str, message: str = "") -> Notice:
        return self.show(NoticeKind.SUCCESS, title, message)

    def error(self, title: str, message: str = "") -> Notice:
        return self.show(NoticeKind.ERROR, title, message)

    def info(self, title: str, message: str = "") -> Notice:
        return self.show(NoticeKind.INFO, title, message)

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    @property
    def last(self) -> Notice | None:
        return self._notices[-1] if self._notices else None

    def clear(self) -> None:
        self._notices.clear()
