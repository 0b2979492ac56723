"""Queue of log calls made before the database is ready."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Generic, TypeVar

_logger = logging.getLogger("influx_logging")

T = TypeVar("T")


class PendingQueue(Generic[T]):
    """FIFO of deferred log calls, replayed exactly once.

    Each item captures a whole original call, callback included. Until
    `replay` runs, `defer` stores items and returns True. Afterwards the
    queue is gone and `defer` returns False, telling the caller to dispatch
    the call itself.

    `replay` holds the lock while it dispatches the queued items, so a call
    racing with the replay waits in `defer` and is then dispatched by its
    caller after every queued item. Dispatching must therefore be quick: the
    handler only hands the call to the worker's inbox.

    Example:
        pending = PendingQueue()
        pending.defer("hello")
        pending.replay(print)  # prints "hello"
        assert pending.defer("late") is False
    """

    def __init__(self) -> None:
        self._items: deque[T] | None = deque()
        self._lock = threading.Lock()

    def defer(self, item: T) -> bool:
        """Queue an item if the queue has not been replayed yet.

        Returns:
            True if the item was queued, False if the caller must dispatch it.
        """
        with self._lock:
            if self._items is None:
                return False
            self._items.append(item)
            return True

    def replay(self, dispatch: Callable[[T], None]) -> int:
        """Dispatch every queued item in order, then discard the queue.

        Returns:
            Number of items replayed. Zero on any call after the first.
        """
        with self._lock:
            if self._items is None:
                return 0

            items = self._items
            self._items = None

            for item in items:
                try:
                    dispatch(item)
                except Exception as e:
                    _logger.error("influx-logging: Queued log call failed on replay: %s", e)

            _logger.debug("influx-logging: Replayed %d queued log calls", len(items))
            return len(items)

    def discard(self) -> list[T]:
        """Close the queue without dispatching it.

        Returns:
            The dropped items, in call order, so the caller can fail them.
        """
        with self._lock:
            if self._items is None:
                return []
            items = list(self._items)
            self._items = None
            return items

    @property
    def replayed(self) -> bool:
        """Return True once the queue has been replayed or discarded."""
        with self._lock:
            return self._items is None

    @property
    def size(self) -> int:
        """Return the number of items waiting for replay."""
        with self._lock:
            return 0 if self._items is None else len(self._items)
