"""In-process change feed used by repositories to push full snapshots to listeners."""
from __future__ import annotations
import itertools
import logging
import threading
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class SubscriptionHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._topics: Dict[str, Dict[int, Listener]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, topic: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` on ``topic``; the returned callable unsubscribes it."""
        with self._lock:
            token = next(self._ids)
            self._topics.setdefault(topic, {})[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._topics.get(topic, {})
                listeners.pop(token, None)
                if not listeners:
                    self._topics.pop(topic, None)

        return unsubscribe

    def has_listeners(self, topic: str) -> bool:
        with self._lock:
            return bool(self._topics.get(topic))

    def publish(self, topic: str, payload: Any) -> None:
        with self._lock:
            listeners = list(self._topics.get(topic, {}).values())
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                # listener errors are logged, never raised to the writer
                logger.exception("Listener on %s failed", topic)
