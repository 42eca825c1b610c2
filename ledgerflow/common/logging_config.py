"""
Structured Logging

JSON log records that carry the context of the work in progress: the HTTP
request id and the document being processed. Context lives in contextvars,
so it follows FastAPI's worker threads and the bounded external calls.
"""
import contextvars
import datetime
import json
import logging
import os
from contextlib import contextmanager
from typing import Any, Optional, Union

_request_id: contextvars.ContextVar = contextvars.ContextVar("request_id", default=None)
_document: contextvars.ContextVar = contextvars.ContextVar("document", default=None)

# Third-party loggers that flood DEBUG output with layout details
NOISY_LOGGERS = ("pdfminer", "pdfplumber", "pypdf", "urllib3", "google")


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record. Keyword fields passed through
    StructuredLoggerAdapter are merged at the top level.
    """
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "request_id": _request_id.get() or "GLOBAL",
        }
        document = _document.get()
        if document:
            log_data["document"] = document

        if isinstance(getattr(record, "extra_fields", None), dict):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Decimals and dates show up in transaction context
        return json.dumps(log_data, ensure_ascii=False, default=str)


def resolve_level(level: Union[int, str]) -> int:
    """'info', 'DEBUG' or 20 -> logging level number."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logging(log_level: Union[int, str] = logging.INFO, log_file: Optional[str] = None):
    """
    Route the root logger to JSON on stderr (and optionally a file).

    Args:
        log_level: Level number or name, as found in settings.yaml
        log_file: Optional path; parent directories are created
    """
    level = resolve_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(JSONFormatter())
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"extra_fields": {"level": logging.getLevelName(level), "log_file": log_file}},
    )


def get_request_id() -> Optional[str]:
    return _request_id.get()


def get_document() -> Optional[str]:
    return _document.get()


@contextmanager
def log_context(request_id: Optional[str] = None, document: Optional[str] = None):
    """
    Attach a request id and/or document name to every record logged inside
    the block. Previous values are restored on exit.
    """
    tokens = []
    if request_id is not None:
        tokens.append((_request_id, _request_id.set(request_id)))
    if document is not None:
        tokens.append((_document, _document.set(document)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that turns keyword arguments into structured fields:

        logger.info("Table parsed", tx_count=12, page=3)
    """
    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        extra = kwargs.get("extra") or {}
        fields = dict(extra.get("extra_fields", {}))

        standard_args = {'exc_info', 'stack_info', 'stacklevel', 'extra'}
        new_kwargs = {}
        for key, value in kwargs.items():
            if key in standard_args:
                new_kwargs[key] = value
            elif key == "extra_fields" and isinstance(value, dict):
                fields.update(value)
            else:
                fields[key] = value

        new_kwargs["extra"] = {**extra, "extra_fields": fields}
        return msg, new_kwargs


def get_logger(name: str) -> StructuredLoggerAdapter:
    return StructuredLoggerAdapter(logging.getLogger(name), {})
