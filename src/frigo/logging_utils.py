"""Logging configuration helpers."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s |%(item_tag)s %(message)s"


class PlainFormatter(logging.Formatter):
    """Pipe-separated lines, tagged with the inventory item when one is attached."""

    def __init__(self) -> None:
        super().__init__(PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        item_id = getattr(record, "item_id", None)
        record.item_tag = f" [{item_id}]" if item_id else ""
        return super().format(record)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, carrying the item id when attached."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if item_id := getattr(record, "item_id", None):
            payload["item_id"] = item_id

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info:
            payload["stack"] = record.stack_info

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level_name: str, fmt: str) -> None:
    """Install a single root handler using the plain or JSON formatter."""

    numeric_level = getattr(logging, level_name.upper(), logging.INFO)
    format_normalized = (fmt or "plain").lower()

    handler = logging.StreamHandler()
    if format_normalized == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = PlainFormatter()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(numeric_level)

    logging.captureWarnings(True)

    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(max(numeric_level, logging.WARNING))
