"""Logging JSON con structlog y trace_id contextual."""
from __future__ import annotations
import logging
import structlog
import sys
from uuid import uuid4
from contextvars import ContextVar

trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="-")

def set_trace_id(value: str | None = None) -> str:
    """Define trace_id en el contexto actual y devuelve el valor usado."""
    tid = value or uuid4().hex
    trace_id_ctx.set(tid)
    return tid

def _inject_trace_id(_, __, event_dict: dict) -> dict:
    return {**event_dict, "trace_id": trace_id_ctx.get()}

def configure_logging(level: str | int = "INFO") -> None:
    """Configura structlog una sola vez por proceso (lo llama bootstrap_di)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            _inject_trace_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )

def get_logger(**initial_values) -> structlog.stdlib.BoundLogger:
    """Logger JSON; los valores iniciales quedan ligados a cada evento."""
    return structlog.get_logger(**initial_values)
