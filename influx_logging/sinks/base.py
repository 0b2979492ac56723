"""Base sink interface for influx-logging."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from influx_logging.models import Point


@dataclass
class WriteResult:
    """Result of a write_batch operation.

    Attributes:
        failed_points: Points that were not written. The worker reports them
            and drops them; they are never retried.
        errors: Error messages for logging/debugging.
    """

    failed_points: list[Point] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if all points were written successfully."""
        return not self.failed_points and not self.errors

    @classmethod
    def ok(cls) -> WriteResult:
        """Create a successful result with no failures."""
        return cls()

    @classmethod
    def failure(cls, points: list[Point], error: str | None = None) -> WriteResult:
        """Create a failure result for the given points."""
        errors = [error] if error else ["write failed"]
        return cls(failed_points=list(points), errors=errors)


class Sink(ABC):
    """Abstract base class for time-series sinks.

    A sink is the downstream datastore as seen by the handler: it can list
    and create databases, and write a batch of points into a measurement.

    To implement a custom sink:
        1. Subclass this class
        2. Implement `database_names`, `create_database` and `write_batch`
        3. Optionally override `close`

    Example:
        class PrintSink(Sink):
            def database_names(self) -> set[str]:
                return {"log"}

            def create_database(self, name: str) -> None:
                pass

            def write_batch(self, measurement: str, points: list[Point]) -> WriteResult:
                for point in points:
                    print(measurement, point.values, point.tags)
                return WriteResult.ok()
    """

    @abstractmethod
    def database_names(self) -> set[str]:
        """Return the names of the databases that exist downstream.

        Raises:
            Exception: Any client error. The readiness gate reports it.
        """

    @abstractmethod
    def create_database(self, name: str) -> None:
        """Create the database ``name``.

        Raises:
            Exception: Any client error. The readiness gate reports it.
        """

    @abstractmethod
    def write_batch(self, measurement: str, points: list[Point]) -> WriteResult:
        """Write a batch of points into ``measurement``.

        Called from the worker's flush executor. An empty batch must succeed.
        Implementations should make a single attempt and describe failures in
        the returned WriteResult rather than raising.

        Args:
            measurement: Name of the measurement to write into.
            points: Points to write, in buffer order.

        Returns:
            WriteResult describing any failure.
        """

    def close(self) -> None:
        """Close the sink and release resources.

        Called during handler shutdown. The default implementation does nothing.
        """
