"""Main logging handler for influx-logging."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from influx_logging.errors import InfluxLoggingError, InitializationError
from influx_logging.events import ERROR, LOGGED, EventEmitter
from influx_logging.extractors import record_message, record_metadata
from influx_logging.gate import ReadinessGate
from influx_logging.models import LogEntry
from influx_logging.queues.pending import PendingQueue
from influx_logging.sinks.influxdb_sink import InfluxDBSink
from influx_logging.worker import Callback, Worker

if TYPE_CHECKING:
    from influx_logging.extractors import Extractor
    from influx_logging.sinks.base import Sink
    from influx_logging.sinks.influxdb_sink import Host

_logger = logging.getLogger("influx_logging")

_OWN_LOGGER = "influx_logging"


# Level names used by other logging frameworks, placed between the stdlib levels
_EXTRA_LEVELS = {
    "http": 18,
    "verbose": 15,
    "silly": 5,
}


# A call waiting for readiness: the entry and its callback
_PendingCall = tuple[LogEntry, Callback | None]


def _fail(callback: Callback | None, error: Exception) -> None:
    if callback is None:
        return
    try:
        callback(error, None)
    except Exception as e:
        _logger.error("influx-logging: Log callback failed: %s", e)


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    if level.lower() in _EXTRA_LEVELS:
        return _EXTRA_LEVELS[level.lower()]
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level!r}")
    return resolved


class InfluxHandler(logging.Handler):
    """Logging handler that ships log events to InfluxDB in batches.

    InfluxHandler can be attached to any logger, or called directly through
    `log`. Each log call becomes one point: the value and tag extractors
    derive its fields and tags from the call's metadata, and the worker
    stamps it with the current time before buffering it. Buffered points are
    written when the buffer holds ``max_buffered`` points or every
    ``flush_interval`` seconds, whichever comes first.

    At construction the handler checks, on a background thread, that the
    target database exists and creates it if needed. Calls made before that
    check succeeds are queued and replayed in order once it does. If the
    check fails the error is reported and calls keep queueing until the
    process restarts; the check is not retried.

    Nothing here blocks on the network: `log` returns as soon as the call is
    queued, and the callback fires once the point is buffered, not written.

    Args:
        level: Minimum level of records taken from the logging module, as a
            name ("info") or number. Besides the stdlib names, "http",
            "verbose" and "silly" are accepted. Direct `log` calls are not
            filtered; the caller decides what to log. Defaults to "info".
        database: Target database. Defaults to "log".
        measurement: Measurement that points are written into. Defaults to "log".
        hosts: InfluxDB endpoints. Defaults to a single localhost:8086 over
            http, or the INFLUX_LOGGING_HOSTS environment variable.
        username: Optional username, passed through to the client.
        password: Optional password, passed through to the client.
        options: Extra keyword arguments for the InfluxDB client.
        flush_interval: Seconds between timed flushes. Defaults to 5.0.
        max_buffered: Buffer length that forces a flush. Defaults to 50.
        build_values: Function ``(level, message, metadata) -> mapping`` that
            derives a point's values. Defaults to ``metadata["values"]``.
        build_tags: Function ``(level, message, metadata) -> mapping`` that
            derives a point's tags. Defaults to ``metadata["tags"]``.
        name: Handler name, useful with several handlers. Defaults to "influxdb".
        silent: When True, calls are acknowledged but nothing is written.
        sink: Custom Sink. When given, the connection arguments are ignored.
        on_error: Listener subscribed to the ``error`` event before the
            database check starts, so initialization errors are not missed.

    Example:
        import logging
        from influx_logging import InfluxHandler

        handler = InfluxHandler(database="app_logs", measurement="events")
        logger = logging.getLogger("myapp")
        logger.addHandler(handler)

        logger.info(
            "request served",
            extra={"values": {"duration_ms": 12}, "tags": {"route": "/health"}},
        )

        handler.close()
    """

    def __init__(
        self,
        level: int | str = "info",
        database: str = "log",
        measurement: str = "log",
        hosts: list[Host] | None = None,
        username: str | None = None,
        password: str | None = None,
        options: dict[str, Any] | None = None,
        flush_interval: float = 5.0,
        max_buffered: int = 50,
        build_values: Extractor | None = None,
        build_tags: Extractor | None = None,
        name: str = "influxdb",
        silent: bool = False,
        sink: Sink | None = None,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> None:
        super().__init__(level=_resolve_level(level))
        self.name = name

        self._database = database
        self._measurement = measurement
        self._closed = False

        self._events = EventEmitter()
        if on_error is not None:
            self._events.subscribe(ERROR, on_error)

        self._sink = sink or InfluxDBSink(
            hosts=hosts,
            database=database,
            username=username,
            password=password,
            options=options,
        )
        self._gate = ReadinessGate(self._sink, database)
        self._pending: PendingQueue[_PendingCall] = PendingQueue()
        self._state_lock = threading.Lock()

        self._worker = Worker(
            sink=self._sink,
            measurement=measurement,
            flush_interval=flush_interval,
            max_buffered=max_buffered,
            build_values=build_values,
            build_tags=build_tags,
            events=self._events,
            silent=silent,
        )
        self._worker.start()

        self._init_thread = threading.Thread(
            target=self._initialize, daemon=True, name="influx-logging-init"
        )
        self._init_thread.start()

    def _initialize(self) -> None:
        """Check the database, then replay calls queued in the meantime."""
        try:
            self._gate.open()
        except InitializationError as e:
            _logger.error("influx-logging: Initialization error: %s", e)
            try:
                self._events.emit(ERROR, e)
            except Exception as listener_error:
                _logger.error("influx-logging: 'error' listener failed: %s", listener_error)
            return

        self._pending.replay(self._dispatch)

    def log(
        self,
        level: str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
    ) -> None:
        """Queue a log event for buffering.

        Safe to call before the database is ready: the call is queued and
        replayed in order later. ``callback(error, success)`` is called exactly
        once, with ``(None, True)`` once the point is buffered or with
        ``(error, None)`` if an extractor failed or the handler was closed
        before the call could be buffered.

        Args:
            level: Level name of the event, e.g. "info".
            message: Log message.
            metadata: Mapping handed to the extractors. Defaults to empty.
            callback: Optional completion callback.
        """
        entry = LogEntry(level=level, message=message, metadata=metadata or {})

        with self._state_lock:
            if not self._closed:
                if not self._pending.defer((entry, callback)):
                    self._worker.submit(entry, callback)
                return

        _fail(callback, InfluxLoggingError(f"handler '{self.name}' is closed"))

    def _dispatch(self, call: _PendingCall) -> None:
        self._worker.submit(*call)

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a stdlib log record to `log`.

        Records from the ``influx_logging`` logger are skipped so that the
        handler's own diagnostics never loop back into the sink.

        Args:
            record: The log record to handle.
        """
        if record.name == _OWN_LOGGER or record.name.startswith(_OWN_LOGGER + "."):
            return

        try:
            self.log(
                record.levelname.lower(),
                record_message(record),
                record_metadata(record),
            )
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Write whatever is currently buffered without waiting for the timer."""
        if self._closed:
            return
        self._worker.flush()

    def close(self) -> None:
        """Stop the worker, flush the buffer and release the sink.

        Calls still queued because the database never became ready are
        dropped with a warning, and their callbacks receive an
        InfluxLoggingError.

        Note:
            Users are responsible for calling this method during application
            shutdown. `logging.shutdown` does it for handlers attached to a
            logger.
        """
        with self._state_lock:
            already_closed = self._closed
            self._closed = True
            dropped = self._pending.discard()

        if already_closed:
            super().close()
            return

        try:
            if dropped:
                _logger.warning(
                    "influx-logging: Dropping %d log calls queued before the database "
                    "was ready",
                    len(dropped),
                )
            for _entry, callback in dropped:
                _fail(
                    callback,
                    InfluxLoggingError(
                        f"handler '{self.name}' closed before the database was ready"
                    ),
                )
            self._worker.stop()
            self._sink.close()
        finally:
            super().close()

    def on(self, event: str, listener: Callable[..., Any]) -> None:
        """Subscribe to the ``error`` or ``logged`` event.

        ``error`` listeners receive the exception (InitializationError,
        ExtractionError or FlushError). ``logged`` listeners receive the
        LogEntry that was buffered.
        """
        if event not in (ERROR, LOGGED):
            raise ValueError(f"unknown event: {event!r}")
        self._events.subscribe(event, listener)

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Block until the database check has finished.

        Returns:
            True if the handler is ready, False if the check failed or the
            timeout expired.
        """
        self._init_thread.join(timeout=timeout)
        return self._gate.ready and self._pending.replayed

    @property
    def ready(self) -> bool:
        """Return True once the database exists and queued calls were replayed."""
        return self._gate.ready and self._pending.replayed and not self._closed

    @property
    def initialization_error(self) -> InitializationError | None:
        """Return the error that blocked readiness, if any."""
        return self._gate.error

    @property
    def pending_size(self) -> int:
        """Return the number of calls waiting for the database to be ready."""
        return self._pending.size

    @property
    def buffered(self) -> int:
        """Return the number of points waiting for the next flush."""
        return self._worker.buffered

    @property
    def worker_alive(self) -> bool:
        """Return True if the background worker is running."""
        return self._worker.is_alive

    @property
    def silent(self) -> bool:
        return self._worker.silent

    @silent.setter
    def silent(self, value: bool) -> None:
        self._worker.silent = value

    @property
    def database(self) -> str:
        return self._database

    @property
    def measurement(self) -> str:
        return self._measurement
