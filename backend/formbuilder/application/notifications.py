"""Transient user-facing notifications (the builder's toasts)."""
from __future__ import annotations
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from formbuilder.core.config import NOTIFICATION_DURATION_SECONDS


@dataclass
class Notification:
    message: str
    level: str  # info | warning | error
    duration: float
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"message": self.message, "level": self.level, "duration": self.duration}


class Notifier:
    """Collects notifications until the presentation layer drains them. Safe to call from the auto-save thread."""

    def __init__(self, default_duration: float = NOTIFICATION_DURATION_SECONDS):
        self._default_duration = default_duration
        self._pending: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, message: str, level: str = "info", duration: Optional[float] = None) -> Notification:
        note = Notification(message, level, self._default_duration if duration is None else duration)
        with self._lock:
            self._pending.append(note)
        return note

    def info(self, message: str, duration: Optional[float] = None) -> Notification:
        return self.notify(message, "info", duration)

    def warning(self, message: str, duration: Optional[float] = None) -> Notification:
        return self.notify(message, "warning", duration)

    def error(self, message: str, duration: Optional[float] = None) -> Notification:
        return self.notify(message, "error", duration)

    def drain(self) -> List[Notification]:
        with self._lock:
            pending, self._pending = self._pending, []
        return pending

    @property
    def pending(self) -> List[Notification]:
        with self._lock:
            return list(self._pending)
