import json
import logging
from contextvars import ContextVar

LOGGER_NAME = "foodcourt"

# Identifiers promoted to top-level keys so log queries can filter on them.
CONTEXT_FIELDS = ("order_id", "merchant_id", "payment_id")

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None) or _request_id.get(),
        }
        for name in CONTEXT_FIELDS:
            payload[name] = getattr(record, name, None)
        fields = getattr(record, "fields", None)
        if fields:
            payload["fields"] = fields
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def log_event(
    message: str,
    *,
    order_id: str | None = None,
    merchant_id: str | None = None,
    payment_id: str | None = None,
    **fields,
) -> None:
    context = {"order_id": order_id, "merchant_id": merchant_id, "payment_id": payment_id}
    logging.getLogger(LOGGER_NAME).info(
        message,
        extra={"request_id": get_request_id(), "fields": fields or None, **context},
    )


def log_exception(message: str, **fields) -> None:
    """Record an unexpected failure with its traceback. Never sent to clients."""
    logging.getLogger(LOGGER_NAME).exception(
        message,
        extra={"request_id": get_request_id(), "fields": fields or None},
    )
