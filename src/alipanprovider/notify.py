"""Change notification channel (one topic per directory document id)."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

ROOTS_TOPIC = "roots"

Listener = Callable[[str], None]


class ChangeNotifier:
    """
    Topic-based change notifications.

    Listeners are called synchronously on the notifying thread. A failing
    listener is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {}
        self._any: list[Listener] = []

    def subscribe(self, topic: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(topic, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(topic, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def subscribe_all(self, listener: Listener) -> None:
        with self._lock:
            self._any.append(listener)

    def notify(self, topic: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(topic, ())) + list(self._any)

        logger.debug("notify %s (%d listeners)", topic, len(listeners))
        for listener in listeners:
            try:
                listener(topic)
            except Exception:
                logger.exception("Change listener failed for %s", topic)
