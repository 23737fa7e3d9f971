"""Centralized logging configuration.

Submissions carry PHI (denial letters, clinical notes), so logging is kept to metadata:
- Structured logs (JSON) to stdout for centralized collection (Docker/K8s/etc.)
- No request/response bodies, form fields, prompts or model output
- Extra fields are optional; the formatter must never raise due to missing keys
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import UTC, datetime
from typing import Any

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Extra fields copied into the JSON payload when present on a record.
_OPTIONAL_FIELDS = ("error", "file_count", "upload_bytes", "success")


class JsonFormatter(logging.Formatter):
    """Emit JSON logs while safely handling missing `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
            "method": getattr(record, "method", getattr(record, "http_method", None)),
            "path": getattr(record, "path", getattr(record, "request_path", None)),
            "status_code": getattr(record, "status_code", None),
            "duration_ms": getattr(record, "duration_ms", None),
        }
        for key in _OPTIONAL_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """Configure application logging (JSON to stdout)."""

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "app.core.logging.JsonFormatter",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["default"],
            },
        }
    )
