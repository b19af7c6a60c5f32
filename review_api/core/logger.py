import logging
import sys
from logging.handlers import QueueHandler, QueueListener
from queue import Queue

from pythonjsonlogger.json import JsonFormatter

from review_api.core.config import settings
from review_api.core.trace import get_trace_id

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "%(trace_id)s %(service)s %(env)s"
)


class TraceContextFilter(logging.Filter):
    """Stamp trace_id/service/env on a record before it leaves the thread."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = (getattr(record, "trace_id", None)
                           or get_trace_id() or "-")
        record.service = getattr(record, "service", None) or settings.app_name
        record.env = getattr(record, "env", None) or settings.env
        return True


_listener: QueueListener | None = None


def setup_json_logging(service: str = "review_service",
                       level: str | int = logging.INFO) -> None:
    global _listener
    if _listener is not None:
        return

    root = logging.getLogger()
    root.setLevel(level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(JsonFormatter(LOG_FORMAT))

    # records are enriched on the request's context, then handed to the queue
    queue_handler = QueueHandler(Queue(-1))
    queue_handler.addFilter(TraceContextFilter())

    _listener = QueueListener(queue_handler.queue, stream_handler,
                              respect_handler_level=True)
    _listener.start()
    root.handlers = [queue_handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
    # access records come from RequestContextMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "logger_initialized", extra={"service": service})


def shutdown_logging() -> None:
    """Flush and stop the queue listener."""
    global _listener
    if _listener:
        _listener.stop()
        _listener = None
