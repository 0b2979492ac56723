"""Sink implementations for influx-logging."""

from influx_logging.sinks.base import Sink, WriteResult
from influx_logging.sinks.influxdb_sink import Host, InfluxDBSink

__all__ = [
    "Sink",
    "WriteResult",
    "Host",
    "InfluxDBSink",
]
