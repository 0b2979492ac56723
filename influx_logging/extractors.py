"""Default field extractors and stdlib record conversion for influx-logging."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable, Mapping
from typing import Any

# Signature shared by build_values and build_tags
Extractor = Callable[[str, str, Mapping[str, Any]], Mapping[str, Any] | None]

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


def build_values(
    level: str,  # noqa: ARG001
    message: str,  # noqa: ARG001
    metadata: Mapping[str, Any],
) -> dict[str, Any]:
    """Return ``metadata["values"]``, or an empty mapping if absent."""
    return dict(metadata.get("values") or {})


def build_tags(
    level: str,  # noqa: ARG001
    message: str,  # noqa: ARG001
    metadata: Mapping[str, Any],
) -> dict[str, Any]:
    """Return ``metadata["tags"]``, or an empty mapping if absent."""
    return dict(metadata.get("tags") or {})


def record_metadata(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the ``extra=`` attributes of a LogRecord into a metadata mapping.

    Standard LogRecord attributes and private attributes are skipped, so
    ``logger.info("msg", extra={"values": {...}, "tags": {...}})`` yields
    ``{"values": {...}, "tags": {...}}``. When the record carries exception
    info, the formatted traceback is added under ``exc_info``.

    Args:
        record: Python logging.LogRecord to convert.

    Returns:
        Metadata mapping handed to the field extractors.

    Example:
        logger.warning(
            "disk almost full",
            extra={"values": {"free_mb": 120}, "tags": {"host": "db-1"}},
        )
        # record_metadata(record) == {
        #     "values": {"free_mb": 120},
        #     "tags": {"host": "db-1"},
        # }
    """
    metadata: dict[str, Any] = {}

    for key, value in record.__dict__.items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        metadata[key] = value

    if record.exc_info:
        metadata["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

    return metadata


def record_message(record: logging.LogRecord) -> str:
    """Return the formatted message, falling back to the raw ``msg``."""
    try:
        return record.getMessage()
    except Exception:
        return str(record.msg)
