"""Minimal synchronous event emitter used by every stage."""

from typing import Any, Callable, Dict, List

from ..logging_config import get_logger

logger = get_logger(__name__)

Handler = Callable[..., Any]


class EventEmitter:
    """Per-event handler lists with synchronous dispatch.

    Handlers run in subscription order inside :meth:`emit`; an exception from
    a handler propagates to the emitter. An ``"error"`` emission that nobody
    listens for is logged and dropped.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Handler:
        """Subscribe ``handler`` to ``event`` and return it."""
        self._listeners.setdefault(event, []).append(handler)
        return handler

    def off(self, event: str, handler: Handler) -> bool:
        """Remove one subscription of ``handler``. Returns False if absent."""
        handlers = self._listeners.get(event)
        if not handlers:
            return False
        for i, existing in enumerate(handlers):
            if existing is handler:
                del handlers[i]
                if not handlers:
                    del self._listeners[event]
                return True
        return False

    def emit(self, event: str, *args: Any) -> bool:
        """Call every handler of ``event``. Returns True if any was called."""
        handlers = list(self._listeners.get(event, ()))
        if not handlers:
            if event == "error":
                error = args[0] if args else None
                logger.warning(
                    f"Unhandled error event on {self!r}: {error!r}",
                    extra={"extra_fields": {"event": event, "error_type": type(error).__name__}},
                )
            return False

        for handler in handlers:
            handler(*args)
        return True

    def listeners(self, event: str) -> List[Handler]:
        """Return a copy of the handlers subscribed to ``event``."""
        return list(self._listeners.get(event, ()))

    def listener_count(self, event: str) -> int:
        """Return how many handlers are subscribed to ``event``."""
        return len(self._listeners.get(event, ()))

    def event_names(self) -> List[str]:
        """Return the events that currently have subscribers."""
        return list(self._listeners)
