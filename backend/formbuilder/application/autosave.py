"""Debounced auto-save: every edit restarts the countdown, the save fires after a quiet period."""
from __future__ import annotations
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class AutoSaver:
    def __init__(
        self,
        save: Callable[[], Any],
        delay: float,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self._save = save
        self._delay = delay
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        """(Re)start the countdown; a save already pending is superseded."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self._delay, lambda: self._fire(timer))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None

    def flush(self) -> bool:
        """Run a pending save right away. Returns False if nothing was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        self._run()
        return True

    def _fire(self, timer: threading.Timer) -> None:
        with self._lock:
            if self._timer is not timer:
                return  # superseded or cancelled after it went off
            self._timer = None
        self._run()

    def _run(self) -> None:
        try:
            self._save()
        except Exception:
            # the editing thread never sees auto-save failures; the save callback reports its own
            logger.exception("Auto-save failed")
