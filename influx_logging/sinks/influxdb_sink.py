"""InfluxDB sink implementation for influx-logging."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from influx_logging.sinks.base import Sink, WriteResult

if TYPE_CHECKING:
    from influxdb import InfluxDBClient

    from influx_logging.models import Point

_logger = logging.getLogger("influx_logging")

ENV_INFLUX_HOSTS = "INFLUX_LOGGING_HOSTS"
ENV_INFLUX_USERNAME = "INFLUX_LOGGING_USERNAME"
ENV_INFLUX_PASSWORD = "INFLUX_LOGGING_PASSWORD"

DEFAULT_INFLUX_HOST = "http://localhost:8086"


@dataclass(frozen=True)
class Host:
    """One InfluxDB HTTP endpoint.

    Attributes:
        host: Hostname or IP address.
        port: HTTP port.
        protocol: "http" or "https".
    """

    host: str = "localhost"
    port: int = 8086
    protocol: str = "http"

    @classmethod
    def from_url(cls, url: str) -> Host:
        """Parse ``http://host:port`` (scheme and port optional)."""
        if "://" not in url:
            url = f"http://{url}"
        parts = urlsplit(url)
        return cls(
            host=parts.hostname or "localhost",
            port=parts.port or 8086,
            protocol=parts.scheme or "http",
        )


DEFAULT_HOSTS = (Host(),)


def _hosts_from_env() -> list[Host]:
    hosts_str = os.environ.get(ENV_INFLUX_HOSTS, DEFAULT_INFLUX_HOST)
    return [Host.from_url(h.strip()) for h in hosts_str.split(",") if h.strip()]


def _create_influx_client(
    host: Host,
    database: str,
    username: str | None,
    password: str | None,
    options: dict[str, Any],
) -> InfluxDBClient:
    """Create an InfluxDB client for a single endpoint."""
    try:
        from influxdb import InfluxDBClient
    except ImportError as e:
        raise ImportError(
            "InfluxDB client not installed. Install with: pip install influx-logging"
        ) from e

    kwargs: dict[str, Any] = {
        "host": host.host,
        "port": host.port,
        "database": database,
        "ssl": host.protocol == "https",
    }
    if username is not None:
        kwargs["username"] = username
    if password is not None:
        kwargs["password"] = password
    kwargs.update(options)

    return InfluxDBClient(**kwargs)


class InfluxDBSink(Sink):
    """InfluxDB 1.x sink built on the ``influxdb`` client library.

    One client is created per endpoint. Every operation is tried against the
    endpoints in order, starting with the last one that worked, and the
    first success wins.

    Args:
        client: InfluxDB client instance. If provided, ``hosts``,
            ``username``, ``password`` and ``options`` are ignored.
        hosts: Endpoints to connect to. Defaults to the environment, or a
            single ``localhost:8086`` over http.
        database: Database that points are written into. Defaults to "log".
        username: Optional username, passed through to the client.
        password: Optional password, passed through to the client.
        options: Extra keyword arguments for ``InfluxDBClient`` (timeout,
            verify_ssl, retries, ...).

    Environment Variables (used when neither client nor hosts is provided):
        INFLUX_LOGGING_HOSTS: Comma-separated URLs (default: http://localhost:8086)
        INFLUX_LOGGING_USERNAME: Username
        INFLUX_LOGGING_PASSWORD: Password

    Example:
        sink = InfluxDBSink(
            hosts=[Host("influx-1"), Host("influx-2")],
            database="app_logs",
            username="writer",
            password="secret",
        )
    """

    def __init__(
        self,
        client: InfluxDBClient | None = None,
        hosts: list[Host] | None = None,
        database: str = "log",
        username: str | None = None,
        password: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        self._database = database
        self._owns_clients = client is None
        self._current = 0
        self._clients: list[InfluxDBClient] = []

        if client is not None:
            self._clients = [client]
            return

        if hosts is None:
            hosts = _hosts_from_env()
            username = username if username is not None else os.environ.get(ENV_INFLUX_USERNAME)
            password = password if password is not None else os.environ.get(ENV_INFLUX_PASSWORD)
        if not hosts:
            raise ValueError("at least one InfluxDB host is required")

        self._clients = [
            _create_influx_client(host, database, username, password, options or {})
            for host in hosts
        ]

    @property
    def database(self) -> str:
        return self._database

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Run a client method, failing over to the next endpoint on error."""
        last_error: Exception | None = None
        count = len(self._clients)

        for offset in range(count):
            index = (self._current + offset) % count
            try:
                result = getattr(self._clients[index], method)(*args, **kwargs)
            except Exception as e:
                last_error = e
                if count > 1:
                    _logger.debug(
                        "influx-logging: Endpoint %d failed on %s: %s", index, method, e
                    )
                continue
            self._current = index
            return result

        if last_error is None:
            raise RuntimeError("InfluxDB sink is closed")
        raise last_error

    def database_names(self) -> set[str]:
        """Return the databases known to the server."""
        return {entry["name"] for entry in self._call("get_list_database")}

    def create_database(self, name: str) -> None:
        """Create the database ``name``."""
        self._call("create_database", name)
        _logger.debug("influx-logging: Created database '%s'", name)

    def write_batch(self, measurement: str, points: list[Point]) -> WriteResult:
        """Write points into ``measurement`` with a single request.

        This method makes one attempt (per endpoint) and returns immediately.
        Failures are returned in the WriteResult; the worker reports them.
        InfluxDB rejects a whole request if any point in it has no fields, so
        such points are left out of the request and returned as failed.
        """
        if not points:
            return WriteResult.ok()

        body = []
        writable = []
        fieldless = []
        for point in points:
            rendered = point.to_influx(measurement)
            if rendered["fields"]:
                body.append(rendered)
                writable.append(point)
            else:
                fieldless.append(point)

        result = WriteResult()
        if fieldless:
            _logger.warning(
                "influx-logging: Skipping %d points without fields in '%s'",
                len(fieldless),
                measurement,
            )
            result.failed_points.extend(fieldless)
            result.errors.append(f"{len(fieldless)} points have no fields")

        if not body:
            return result

        try:
            written = self._call("write_points", body, database=self._database)
        except Exception as e:
            written_error = str(e)
        else:
            if written is not False:
                return result
            written_error = "server rejected the batch"

        result.failed_points.extend(writable)
        result.errors.append(written_error)
        return result

    def close(self) -> None:
        """Close the InfluxDB clients if we own them."""
        if not self._owns_clients:
            return
        for client in self._clients:
            try:
                client.close()
            except Exception as e:
                _logger.debug("influx-logging: Error closing client: %s", e)
        self._clients = []
