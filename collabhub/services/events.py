"""In-process pub/sub for real-time task updates.

Events are published after the originating transaction commits, so a failing
subscriber is logged and never turns a committed write into an error.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from collections.abc import Callable
from functools import lru_cache
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict[str, Any]], None]


def task_status_channel(workspace_id: uuid.UUID | str) -> str:
    return f"task_status_updated:{workspace_id}"


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``channel``; returns a callable that unsubscribes it."""
        with self._lock:
            self._handlers[channel].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers.get(channel, []):
                    self._handlers[channel].remove(handler)

        return unsubscribe

    def publish(self, channel: str, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every subscriber. Returns the number of handlers that succeeded."""
        with self._lock:
            handlers = list(self._handlers.get(channel, []))
        delivered = 0
        for handler in handlers:
            try:
                handler(channel, payload)
                delivered += 1
            except Exception:
                logger.exception("event_handler_failed: channel=%s", channel)
        return delivered


@lru_cache(maxsize=1)
def get_event_bus() -> EventBus:
    """Process-wide bus used by the HTTP layer; services receive it explicitly."""
    return EventBus()
