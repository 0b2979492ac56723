"""Integration tests for InfluxHandler against a real InfluxDB 1.x.

These tests require a running InfluxDB instance.
Start one with: docker run -d -p 8086:8086 influxdb:1.8

Run these tests with:
    pytest tests/test_influxdb_integration.py -v -m integration
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any
from urllib.parse import urlsplit

import pytest

from influx_logging import Host, InfluxHandler

INFLUX_URL = os.environ.get("INFLUX_LOGGING_TEST_URL", "http://localhost:8086")


def _test_host() -> Host:
    return Host.from_url(INFLUX_URL)


def is_influxdb_available() -> bool:
    """Check if InfluxDB is available."""
    try:
        from influxdb import InfluxDBClient

        parts = urlsplit(INFLUX_URL)
        client = InfluxDBClient(host=parts.hostname, port=parts.port or 8086, timeout=2)
        client.ping()
        client.close()
        return True
    except Exception:
        return False


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not is_influxdb_available(),
        reason="InfluxDB not available at " + INFLUX_URL,
    ),
]


@pytest.fixture
def influx_client():
    """Create an InfluxDB client for assertions."""
    from influxdb import InfluxDBClient

    host = _test_host()
    client = InfluxDBClient(host=host.host, port=host.port)
    yield client
    client.close()


@pytest.fixture
def unique_database(influx_client) -> Any:
    """Generate a unique database name and drop it afterwards."""
    name = f"influx_logging_test_{uuid.uuid4().hex[:8]}"
    yield name
    try:
        influx_client.drop_database(name)
    except Exception:
        pass


def wait_for_points(
    client: Any,
    database: str,
    measurement: str,
    expected_count: int,
    timeout: float = 10.0,
) -> list[dict[str, Any]]:
    """Wait for points to appear in a measurement."""
    start = time.time()
    while time.time() - start < timeout:
        try:
            result = client.query(f'SELECT * FROM "{measurement}"', database=database)
            points = list(result.get_points(measurement=measurement))
            if len(points) >= expected_count:
                return points
        except Exception:
            pass
        time.sleep(0.5)

    raise TimeoutError(
        f"Expected {expected_count} points in {database}.{measurement}, "
        f"timed out after {timeout}s"
    )


class TestInfluxDBIntegration:
    """End-to-end tests against InfluxDB."""

    def test_database_is_created(self, influx_client, unique_database):
        """Test that the handler creates a missing database."""
        handler = InfluxHandler(database=unique_database, hosts=[_test_host()])
        try:
            assert handler.wait_until_ready(timeout=10.0)
        finally:
            handler.close()

        names = {db["name"] for db in influx_client.get_list_database()}
        assert unique_database in names

    def test_logging_writes_points(self, influx_client, unique_database):
        """Test that logged events end up as points with fields and tags."""
        handler = InfluxHandler(
            database=unique_database,
            measurement="events",
            hosts=[_test_host()],
            max_buffered=5,
            flush_interval=0.5,
        )

        logger = logging.getLogger("test.integration")
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

        try:
            for i in range(7):
                logger.info(
                    "request served",
                    extra={"values": {"index": i}, "tags": {"route": f"/r{i % 2}"}},
                )

            points = wait_for_points(influx_client, unique_database, "events", 7)
        finally:
            handler.close()
            logger.removeHandler(handler)

        assert sorted(p["index"] for p in points) == list(range(7))
        assert {p["route"] for p in points} == {"/r0", "/r1"}
