"""influx-logging: A non-blocking, batching Python logging handler for InfluxDB.

influx-logging extends Python's standard logging module to ship structured
log events to an InfluxDB database as time-series points, without blocking
your application.

Key Features:
    - Non-blocking: Log calls are handed to a background worker thread
    - Batched: Points are written when the buffer fills up or on a timer
    - Startup tolerant: Calls made before the database is ready are queued
      and replayed in order
    - Extensible: Custom value/tag extractors and custom sinks

Basic Usage:
    import logging
    from influx_logging import InfluxHandler

    # Create handler (creates the "log" database if needed)
    handler = InfluxHandler(database="log", measurement="log")

    # Attach to logger
    logger = logging.getLogger("myapp")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

    # Log normally; values become fields, tags become tags
    logger.info(
        "Job finished",
        extra={"values": {"duration_s": 4.2}, "tags": {"job": "nightly"}},
    )

    # Clean shutdown
    handler.close()

Direct calls:
    handler.log(
        "info",
        "cache warmed",
        {"values": {"entries": 1200}},
        callback=lambda err, ok: print(err or "buffered"),
    )

Custom extractors:
    def tags_from_level(level, message, metadata):
        return {"level": level}

    handler = InfluxHandler(build_tags=tags_from_level)
"""

from influx_logging.errors import (
    ExtractionError,
    FlushError,
    InfluxLoggingError,
    InitializationError,
)
from influx_logging.events import EventEmitter
from influx_logging.extractors import build_tags, build_values, record_metadata
from influx_logging.gate import GateState, ReadinessGate
from influx_logging.handler import InfluxHandler
from influx_logging.models import LogEntry, Point
from influx_logging.queues import PendingQueue, PointBuffer
from influx_logging.sinks import Host, InfluxDBSink, Sink, WriteResult
from influx_logging.worker import Worker

__version__ = "0.1.0"

__all__ = [
    # Main handler
    "InfluxHandler",
    # Data types
    "LogEntry",
    "Point",
    # Sink interface and implementations
    "Sink",
    "WriteResult",
    "InfluxDBSink",
    "Host",
    # Extractors
    "build_values",
    "build_tags",
    "record_metadata",
    # Engine
    "Worker",
    "ReadinessGate",
    "GateState",
    "PendingQueue",
    "PointBuffer",
    "EventEmitter",
    # Errors
    "InfluxLoggingError",
    "InitializationError",
    "ExtractionError",
    "FlushError",
    # Version
    "__version__",
]
