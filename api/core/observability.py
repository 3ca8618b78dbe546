"""
Logging and tracing setup.

- `setup_logging` installs a JSON (or plain) formatter on the root logger.
- `build_tracer_provider` returns an OpenTelemetry SDK provider. The provider
  is NOT registered globally; callers derive tracers from it and inject them.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

REPOSITORY_TRACER = "person-repository"
HANDLER_TRACER = "person-handler"

_EXTRA_FIELDS = ("operation", "person_id", "path", "method", "status_code", "table")


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    # Replace the handler from an earlier call instead of stacking a second one.
    for existing in list(logging.root.handlers):
        if getattr(existing, "_persons_api", False):
            logging.root.removeHandler(existing)
    handler = logging.StreamHandler()
    handler._persons_api = True
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


def build_tracer_provider(
    service_name: str,
    exporter: str = "none",
    *,
    span_exporter: SpanExporter | None = None,
) -> TracerProvider:
    """
    Build a tracer provider for this process.

    `exporter` selects a built-in exporter ("none" or "console").
    `span_exporter` overrides it, e.g. with an in-memory exporter in tests.
    """
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    if span_exporter is None and exporter == "console":
        span_exporter = ConsoleSpanExporter()
    if span_exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider
