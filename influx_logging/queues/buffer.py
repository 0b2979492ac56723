"""In-memory point buffer shared by the size and time flush triggers."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from influx_logging.models import Point


class PointBuffer:
    """Thread-safe, ordered, append-only buffer of points.

    Points are only ever removed by `swap`, which takes the whole content
    and leaves the buffer empty under the same lock that guards `append`.
    A point is therefore returned by exactly one swap, and a point appended
    after a swap is kept for the next one.

    Example:
        buffer = PointBuffer()
        buffer.append(Point(values={"latency": 12}))
        points = buffer.swap()  # [Point(...)], buffer is now empty
    """

    def __init__(self) -> None:
        self._points: list[Point] = []
        self._lock = threading.Lock()

    def append(self, point: Point) -> int:
        """Append a point and return the new buffer length."""
        with self._lock:
            self._points.append(point)
            return len(self._points)

    def swap(self) -> list[Point]:
        """Take every buffered point, leaving the buffer empty."""
        with self._lock:
            points = self._points
            self._points = []
            return points

    @property
    def size(self) -> int:
        """Return the current number of buffered points."""
        with self._lock:
            return len(self._points)
