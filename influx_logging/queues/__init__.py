"""Queue implementations for influx-logging."""

from influx_logging.queues.buffer import PointBuffer
from influx_logging.queues.pending import PendingQueue

__all__ = ["PendingQueue", "PointBuffer"]
