"""Readiness gate: make sure the target database exists before any write."""

from __future__ import annotations

import enum
import logging
import threading
from typing import TYPE_CHECKING

from influx_logging.errors import InitializationError

if TYPE_CHECKING:
    from influx_logging.sinks.base import Sink

_logger = logging.getLogger("influx_logging")


class GateState(enum.Enum):
    NOT_READY = "not_ready"
    READY = "ready"


class ReadinessGate:
    """One-shot initializer for the target database.

    `open` asks the sink for the existing database names and creates the
    configured database when it is missing. The gate moves from NOT_READY
    to READY once, on success. A failure leaves it NOT_READY for good and is
    recorded in `error`; there is no retry.

    Args:
        sink: Sink to check and create the database on.
        database: Name of the target database.

    Example:
        gate = ReadinessGate(sink, "log")
        try:
            gate.open()
        except InitializationError as e:
            print(e)
    """

    def __init__(self, sink: Sink, database: str) -> None:
        self._sink = sink
        self._database = database
        self._state = GateState.NOT_READY
        self._lock = threading.Lock()
        self._attempted = False
        self.error: InitializationError | None = None

    def open(self) -> None:
        """Run the database check once.

        Raises:
            InitializationError: If listing or creating the database failed,
                or if a previous attempt already failed.
        """
        with self._lock:
            if self._state is GateState.READY:
                return
            if self._attempted:
                raise self.error or InitializationError(self._database, "already attempted")
            self._attempted = True

            try:
                names = self._sink.database_names()
            except Exception as e:
                self.error = InitializationError(self._database, f"listing databases: {e}")
                raise self.error from e

            if self._database not in names:
                try:
                    self._sink.create_database(self._database)
                except Exception as e:
                    self.error = InitializationError(self._database, f"creating database: {e}")
                    raise self.error from e

            self._state = GateState.READY
            _logger.debug("influx-logging: Database '%s' is ready", self._database)

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def ready(self) -> bool:
        """Return True once the database is known to exist."""
        return self._state is GateState.READY

    @property
    def database(self) -> str:
        return self._database
