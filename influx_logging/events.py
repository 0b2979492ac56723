"""Minimal synchronous event emitter for the ``error`` and ``logged`` streams."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

ERROR = "error"
LOGGED = "logged"


class EventEmitter:
    """Dispatch named events to subscribed listeners.

    Listeners are called synchronously, in subscription order, on whichever
    thread emits the event (the worker, the flush executor or the
    initialization thread). Exceptions raised by a listener propagate to the
    emitter's caller.

    Example:
        events = EventEmitter()
        events.subscribe("error", lambda exc: print(f"sink failed: {exc}"))
        events.emit("error", RuntimeError("boom"))
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[..., Any]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, name: str, listener: Callable[..., Any]) -> None:
        """Subscribe a listener to an event name."""
        with self._lock:
            self._listeners.setdefault(name, []).append(listener)

    def unsubscribe(self, name: str, listener: Callable[..., Any]) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        with self._lock:
            listeners = self._listeners.get(name, [])
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, name: str, *args: Any) -> None:
        """Call every listener subscribed to ``name`` with ``args``."""
        with self._lock:
            listeners = list(self._listeners.get(name, []))
        for listener in listeners:
            listener(*args)

    def listener_count(self, name: str) -> int:
        with self._lock:
            return len(self._listeners.get(name, []))
