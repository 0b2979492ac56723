"""Exception types for influx-logging."""


class InfluxLoggingError(Exception):
    """Base class for errors reported by influx-logging."""


class InitializationError(InfluxLoggingError):
    """Listing or creating the target database failed.

    The handler stays not ready for the rest of its lifetime. Calls keep
    accumulating in the pending queue until the process is restarted.
    """

    def __init__(self, database: str, reason: str) -> None:
        super().__init__(f"could not initialize database '{database}': {reason}")
        self.database = database


class ExtractionError(InfluxLoggingError):
    """A value or tag extractor failed for a single log call."""

    def __init__(self, extractor: str, reason: str) -> None:
        super().__init__(f"{extractor} failed: {reason}")
        self.extractor = extractor


class FlushError(InfluxLoggingError):
    """A batched write failed. The batch is discarded."""

    def __init__(self, measurement: str, count: int, reason: str) -> None:
        super().__init__(f"failed to write {count} points to '{measurement}': {reason}")
        self.measurement = measurement
        self.count = count
