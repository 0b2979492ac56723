"""Data types passed between the handler, the worker and the sinks."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple


class LogEntry(NamedTuple):
    """A single log call as received from the producer."""

    level: str
    message: str
    metadata: Mapping[str, Any]


@dataclass(frozen=True)
class Point:
    """One time-series record: values (including ``time``) plus tags."""

    values: dict[str, Any]
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def time(self) -> Any:
        return self.values.get("time")

    def to_influx(self, measurement: str) -> dict[str, Any]:
        """Render the JSON body understood by ``InfluxDBClient.write_points``."""
        fields = {key: value for key, value in self.values.items() if key != "time"}
        body: dict[str, Any] = {
            "measurement": measurement,
            "tags": dict(self.tags),
            "fields": fields,
        }
        if self.time is not None:
            body["time"] = self.time
        return body
