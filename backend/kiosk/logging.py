from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Context variable to attach the kiosk session id to every log record.
_SESSION_ID: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
# One kiosk per process: request handlers run in their own contexts, so keep a fallback.
_PROCESS_SESSION_ID: Optional[str] = None

_RESERVED = {
    "msg", "args", "levelname", "levelno", "name", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "processName", "process",
    "taskName", "message", "asctime", "session_id",
}


def set_session_id(session_id: str) -> None:
    global _PROCESS_SESSION_ID
    _PROCESS_SESSION_ID = session_id
    _SESSION_ID.set(session_id)


def clear_session_id() -> None:
    global _PROCESS_SESSION_ID
    _PROCESS_SESSION_ID = None
    _SESSION_ID.set(None)


class SessionIdFilter(logging.Filter):
    # Adds session_id to log records.
    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _SESSION_ID.get() or _PROCESS_SESSION_ID
        return True


class JsonFormatter(logging.Formatter):
    # Structured JSON formatter for logs.
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "session_id": getattr(record, "session_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        # Extras passed through extra={}
        for key, value in record.__dict__.items():
            if key in _RESERVED:
                continue
            try:
                json.dumps(value, ensure_ascii=False)
                payload[key] = value
            except TypeError:
                payload[key] = str(value)

        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    # Configure root logging once.
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SessionIdFilter())

    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s session_id=%(session_id)s %(message)s"
        ))

    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
