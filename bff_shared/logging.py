"""
Structured logging for the Orchestrix BFF.

Every event is rendered as one JSON line carrying the logger name, level,
an ISO-8601 UTC ``timestamp``, the owning service, the active trace/span
ids and whatever correlation values (request id, user id, tenant id) are
bound for the current request.
"""

import logging
import sys
import uuid
from typing import Any, Dict, List, Optional

import structlog
from opentelemetry import trace

EventDict = Dict[str, Any]


def _service_from_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    # Logger names are "<service>.<component>"
    service, sep, _ = event_dict.get("logger", "").partition(".")
    if sep:
        event_dict.setdefault("service", service)
    return event_dict


def _trace_ids(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    span = trace.get_current_span()
    if not span.is_recording():
        return event_dict
    ctx = span.get_span_context()
    if ctx.trace_id:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
    if ctx.span_id:
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def build_processors() -> List[Any]:
    """Processor chain shared by every BFF logger."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _service_from_logger_name,
        _trace_ids,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog through stdlib logging with JSON output on stdout."""
    structlog.configure(
        processors=build_processors(),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    get_logger(f"{service_name}.logging").debug("Logging configured", level=log_level)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id for the current request, generating one when absent."""
    request_id = request_id or str(uuid.uuid4())
    structlog.contextvars.bind_contextvars(request_id=request_id)
    return request_id


def set_user_context(user_id: Optional[str] = None, tenant_id: Optional[str] = None) -> None:
    values = {key: value for key, value in (("user_id", user_id), ("tenant_id", tenant_id)) if value}
    if values:
        structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
