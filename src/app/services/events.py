# src/app/services/events.py
"""
In-process domain event dispatcher.
Engines publish after their transaction commits; notification delivery subscribes.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable

from src.app.domain.models import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class DomainEventDispatcher:
    """
    Synchronous observer list.

    publish() calls every handler registered at that moment, in registration
    order, on the caller's thread. A failing handler is logged and skipped;
    it never affects the publisher or the other handlers.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %r failed for %s (targets=%s)",
                    handler,
                    event.type.value,
                    ",".join(event.target_user_ids),
                )


def log_domain_event(event: DomainEvent) -> None:
    """Default subscriber: records every event in the application log."""
    logger.info(
        "Domain event %s: actor=%s scope=%s targets=%s metadata=%s",
        event.type.value,
        event.actor_id,
        event.scope_id,
        list(event.target_user_ids),
        dict(event.metadata),
    )
