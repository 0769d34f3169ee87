"""
JSON log lines for the feedback service.

Every line carries timestamp, level, logger, message and request_id. The
intake fields below are always present so log queries can rely on them;
they are null on lines that are not about a submission.
"""
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

# Correlation id of the request being served (set by CorrelationIdMiddleware)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

SUBMISSION_FIELDS = ("submission_id", "evaluator_id")
LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class FeedbackJsonFormatter(JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["request_id"] = request_id_var.get() or None
        for field in SUBMISSION_FIELDS:
            log_record.setdefault(field, None)


def setup_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    if any(isinstance(h.formatter, FeedbackJsonFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(FeedbackJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
