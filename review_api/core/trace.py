from contextvars import ContextVar
from uuid import uuid4

TRACE_HEADER = "X-Request-Id"

_trace_id: ContextVar[str] = ContextVar("trace_id", default="-")


def get_trace_id() -> str:
    return _trace_id.get()


def set_trace_id(value: str | None = None) -> str:
    """Bind a trace id to the current context; generate one when missing."""
    trace_id = value or str(uuid4())
    _trace_id.set(trace_id)
    return trace_id
