"""Worker thread that buffers log calls as points and flushes them to a sink."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from influx_logging import extractors
from influx_logging.errors import ExtractionError, FlushError
from influx_logging.events import ERROR, LOGGED, EventEmitter
from influx_logging.extractors import Extractor
from influx_logging.models import LogEntry, Point
from influx_logging.queues.buffer import PointBuffer

if TYPE_CHECKING:
    from influx_logging.sinks.base import Sink

_logger = logging.getLogger("influx_logging")

# callback(error, success): (None, True) or (error, None)
Callback = Callable[[Exception | None, bool | None], Any]


@dataclass
class _Call:
    """A log call waiting in the worker's inbox."""

    entry: LogEntry
    callback: Callback | None = None


_STOP = object()


class Worker:
    """Background worker that turns log calls into buffered points.

    Log calls are handed to `submit`, which only puts them in an inbox; the
    worker thread does the rest, so a call never runs in its caller's stack.
    For each call the worker runs the value and tag extractors, stamps
    ``values["time"]``, and appends the point to the buffer.

    The buffer is flushed when it reaches ``max_buffered`` points, and every
    ``flush_interval`` seconds regardless of its size. Writes run on a
    single-thread flush executor: a slow or hung write delays later writes
    but never stops the worker from buffering new records. A failed write is
    reported on the ``error`` event stream and the batch is dropped.

    Args:
        sink: Sink to write batches to.
        measurement: Measurement that points are written into. Defaults to "log".
        flush_interval: Seconds between timed flushes. Defaults to 5.0.
        max_buffered: Buffer length that forces a flush. Defaults to 50.
        build_values: Extractor for the point's values. Defaults to
            ``metadata["values"]``.
        build_tags: Extractor for the point's tags. Defaults to
            ``metadata["tags"]``.
        events: Emitter for the ``error`` and ``logged`` events.
        silent: When True, calls are acknowledged but nothing is buffered.

    Example:
        worker = Worker(sink=InfluxDBSink(), max_buffered=100)
        worker.start()
        worker.submit(LogEntry("info", "started", {"values": {"pid": 42}}))
        # ...
        worker.stop()
    """

    def __init__(
        self,
        sink: Sink,
        measurement: str = "log",
        flush_interval: float = 5.0,
        max_buffered: int = 50,
        build_values: Extractor | None = None,
        build_tags: Extractor | None = None,
        events: EventEmitter | None = None,
        silent: bool = False,
    ) -> None:
        if flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        if max_buffered < 1:
            raise ValueError("max_buffered must be at least 1")

        self._sink = sink
        self._measurement = measurement
        self._flush_interval = flush_interval
        self._max_buffered = max_buffered
        self._build_values = build_values or extractors.build_values
        self._build_tags = build_tags or extractors.build_tags
        self._events = events or EventEmitter()
        self.silent = silent

        self._inbox: queue.Queue[Any] = queue.Queue()
        self._buffer = PointBuffer()
        self._executor: ThreadPoolExecutor | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._started = False

    def start(self) -> None:
        """Start the worker thread and the flush executor.

        The thread runs as a daemon so it won't prevent program exit.
        """
        if self._started:
            return

        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="influx-logging-flush"
        )
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="influx-logging-worker"
        )
        self._thread.start()
        self._started = True

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the timer, buffer what is left in the inbox and flush it.

        Waits for in-flight writes to finish before returning.

        Args:
            timeout: Maximum seconds to wait for the worker thread to stop.
        """
        if not self._started:
            return

        self._stop_event.set()
        self._inbox.put(_STOP)

        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                _logger.warning("influx-logging: Worker thread did not stop within timeout")

        executor = self._executor
        self._executor = None
        if executor is not None:
            executor.shutdown(wait=True)

        self._started = False
        self._thread = None

    def submit(self, entry: LogEntry, callback: Callback | None = None) -> None:
        """Hand a log call to the worker thread. Never blocks."""
        self._inbox.put(_Call(entry=entry, callback=callback))

    def flush(self) -> int:
        """Swap the buffer out and write it. Safe to call from any thread.

        Returns:
            Number of points handed to the sink.
        """
        points = self._buffer.swap()
        executor = self._executor

        if executor is None:
            self._write(points)
            return len(points)

        try:
            executor.submit(self._write, points)
        except RuntimeError:
            # Executor already shut down
            self._write(points)
        return len(points)

    def _run(self) -> None:
        """Main worker loop."""
        next_flush = time.monotonic() + self._flush_interval

        while not self._stop_event.is_set():
            try:
                timeout = max(0.0, next_flush - time.monotonic())
                try:
                    item = self._inbox.get(timeout=timeout)
                except queue.Empty:
                    item = None

                if isinstance(item, _Call):
                    self._accept(item)

                if time.monotonic() >= next_flush:
                    self.flush()
                    next_flush = time.monotonic() + self._flush_interval

            except Exception as e:
                _logger.error("influx-logging: Worker error: %s", e)

        self._drain_inbox()
        self.flush()

    def _drain_inbox(self) -> None:
        """Buffer calls still in the inbox on shutdown."""
        while True:
            try:
                item = self._inbox.get_nowait()
            except queue.Empty:
                break
            if not isinstance(item, _Call):
                continue
            try:
                self._accept(item)
            except Exception as e:
                _logger.error("influx-logging: Error draining inbox: %s", e)

    def _accept(self, call: _Call) -> None:
        """Turn one log call into a buffered point."""
        entry = call.entry

        if self.silent:
            _respond(call.callback, None, True)
            return

        try:
            values = self._extract("build_values", self._build_values, entry)
            tags = self._extract("build_tags", self._build_tags, entry)
        except ExtractionError as e:
            self._report(e)
            _respond(call.callback, e, None)
            return

        values["time"] = datetime.now(UTC)
        size = self._buffer.append(Point(values=values, tags=tags))

        if size >= self._max_buffered:
            self.flush()

        self._notify(LOGGED, entry)
        _respond(call.callback, None, True)

    def _extract(self, name: str, extractor: Extractor, entry: LogEntry) -> dict[str, Any]:
        try:
            result = extractor(entry.level, entry.message, entry.metadata)
        except Exception as e:
            raise ExtractionError(name, str(e)) from e
        if result is None:
            return {}
        if not isinstance(result, Mapping):
            raise ExtractionError(name, f"expected a mapping, got {type(result).__name__}")
        return dict(result)

    def _write(self, points: list[Point]) -> None:
        """Write one batch to the sink. The batch is never retried."""
        try:
            result = self._sink.write_batch(self._measurement, points)
        except Exception as e:
            self._report(FlushError(self._measurement, len(points), str(e)))
            return

        if not result.success:
            reason = "; ".join(result.errors)
            count = len(result.failed_points) or len(points)
            self._report(FlushError(self._measurement, count, reason))
            return

        if points:
            _logger.debug("influx-logging: Wrote %d points to '%s'", len(points), self._measurement)

    def _report(self, error: Exception) -> None:
        if isinstance(error, FlushError):
            _logger.error("influx-logging: Dropping batch: %s", error)
        else:
            _logger.error("influx-logging: %s", error)
        self._notify(ERROR, error)

    def _notify(self, name: str, *args: Any) -> None:
        try:
            self._events.emit(name, *args)
        except Exception as e:
            _logger.error("influx-logging: '%s' listener failed: %s", name, e)

    @property
    def is_alive(self) -> bool:
        """Return True if the worker thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def buffered(self) -> int:
        """Return the number of points waiting for the next flush."""
        return self._buffer.size

    @property
    def inbox_size(self) -> int:
        """Return the number of log calls not yet processed."""
        return self._inbox.qsize()


def _respond(callback: Callback | None, error: Exception | None, success: bool | None) -> None:
    if callback is not None:
        callback(error, success)
