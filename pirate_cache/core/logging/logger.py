"""
Structured logging for the cache process.

Records are produced on any thread or asyncio task and handed to a bounded
in-memory queue; a single listener thread drains the queue into the real
handlers, so a slow stdout or disk never stalls a cache call.

- Context (namespace, operation, correlation id) lives in a ContextVar and is
  stamped onto each record by `ContextFilter` before it is queued.
- `JSONFormatter` is the canonical output. `extra={...}` fields land under
  an "extra" object.
- Console output is JSON in production (or when LOG_JSON is set) and plain
  text otherwise. A rotating JSON file is added when LOG_TO_FILE is set.
- When the queue is full the record is dropped and counted, never blocked on.

`setup_logging()` is called by the entry point; importing this module only
defines things.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from pirate_cache.core.config.config import Config


_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

_INITIALIZED_FLAG = "_pirate_cache_logging_initialized"

# Attributes every LogRecord carries; anything else on a record came from `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

_CONTEXT_FIELDS = ("namespace", "operation", "component", "correlation_id", "request_id")


@dataclass(frozen=True, slots=True)
class LoggerConfig:
    """Logging settings, read live from `Config` so tests can flip them."""

    TEXT_FORMAT: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    FILE_NAME: str = "pirate_cache.json.log"
    FILE_BACKUPS: int = 7
    QUEUE_MAX_SIZE: int = 10_000

    @property
    def environment(self) -> str:
        return str(Config.ENVIRONMENT).lower()

    @property
    def level(self) -> int:
        name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        return getattr(logging, name.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return self.environment == "production"
        return bool(Config.LOG_JSON)

    @property
    def use_file(self) -> bool:
        return bool(Config.LOG_TO_FILE)

    @property
    def file_path(self) -> Path:
        return Path(Config.LOGS_DIR).resolve() / self.FILE_NAME


LOGGER_CONFIG = LoggerConfig()


@dataclass(slots=True)
class _QueueCounters:
    enqueued: int = 0
    dropped: int = 0
    handler_errors: int = 0


@dataclass(frozen=True, slots=True)
class LoggingHealth:
    initialized: bool
    queue_size: int
    queue_max_size: int
    records_enqueued: int
    records_dropped: int
    listener_errors: int


_counters = _QueueCounters()
_log_queue: Optional["queue.Queue[logging.LogRecord]"] = None
_listener: Optional[QueueListener] = None


class ContextFilter(logging.Filter):
    """Copy the current log context onto the record; explicit `extra` keys win."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _log_context.get({})

        correlation_id = context.get("correlation_id") or context.get("request_id") or "N/A"
        record.correlation_id = correlation_id
        record.request_id = context.get("request_id", correlation_id)
        record.component = context.get("component") or record.name.partition(".")[0]

        for field in ("namespace", "operation"):
            if not hasattr(record, field):
                setattr(record, field, context.get(field, "N/A"))
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value not in (None, "N/A"):
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in _CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


class _DroppingQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.enqueued += 1
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _counters.dropped += 1
            sys.stderr.write("pirate_cache: log queue full, record dropped\n")


class _CountingQueueListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        _counters.handler_errors += 1
        sys.stderr.write("pirate_cache: log handler failed on a record\n")


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGER_CONFIG.level)
    if LOGGER_CONFIG.use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(LOGGER_CONFIG.TEXT_FORMAT, datefmt=LOGGER_CONFIG.DATE_FORMAT)
        )
    return handler


def _file_handler() -> logging.Handler:
    path = LOGGER_CONFIG.file_path
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=LOGGER_CONFIG.FILE_BACKUPS,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGER_CONFIG.level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    """Route the root logger through the bounded queue. Calling it twice is a no-op."""
    global _counters, _log_queue, _listener

    root = logging.getLogger()
    if getattr(root, _INITIALIZED_FLAG, False):
        return

    _counters = _QueueCounters()
    root.setLevel(LOGGER_CONFIG.level)
    root.handlers.clear()
    root.filters.clear()

    handlers: List[logging.Handler] = [_console_handler()]
    if LOGGER_CONFIG.use_file:
        handlers.append(_file_handler())

    _log_queue = queue.Queue(LOGGER_CONFIG.QUEUE_MAX_SIZE)
    _listener = _CountingQueueListener(_log_queue, *handlers, respect_handler_level=True)
    _listener.start()

    # The filter runs on the producing task, where the ContextVar is set.
    producer = _DroppingQueueHandler(_log_queue)
    producer.setLevel(LOGGER_CONFIG.level)
    producer.addFilter(ContextFilter())
    root.addHandler(producer)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    setattr(root, _INITIALIZED_FLAG, True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": LOGGER_CONFIG.environment,
            "log_level": logging.getLevelName(LOGGER_CONFIG.level),
            "json": LOGGER_CONFIG.use_json,
            "file": LOGGER_CONFIG.use_file,
            "queue_max_size": LOGGER_CONFIG.QUEUE_MAX_SIZE,
        },
    )


def shutdown_logging() -> None:
    """Drain the queue and close every root handler."""
    global _listener, _log_queue

    root = logging.getLogger()
    if not getattr(root, _INITIALIZED_FLAG, False):
        return

    log = logging.getLogger(__name__)
    log.info("Logging shutting down")

    if _listener is not None:
        try:
            _listener.stop()
        except Exception:
            log.exception("Log queue listener failed to stop")
        finally:
            _listener = None

    for handler in list(root.handlers):
        try:
            handler.flush()
            handler.close()
        except Exception:
            log.exception("Log handler failed to close")
        root.removeHandler(handler)

    setattr(root, _INITIALIZED_FLAG, False)
    _log_queue = None


def get_logging_health() -> LoggingHealth:
    pending = _log_queue.qsize() if _log_queue is not None else 0
    capacity = _log_queue.maxsize if _log_queue is not None else 0
    return LoggingHealth(
        initialized=bool(getattr(logging.getLogger(), _INITIALIZED_FLAG, False)),
        queue_size=pending,
        queue_max_size=capacity,
        records_enqueued=_counters.enqueued,
        records_dropped=_counters.dropped,
        listener_errors=_counters.handler_errors,
    )


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scope log context (namespace, operation, correlation id) for a block.

    Works as a sync or async context manager:

    >>> async with LogContext(component="api", operation="get_player"):
    ...     cache.get_player(address)
    """

    def __init__(
        self,
        namespace: Optional[str] = None,
        operation: Optional[str] = None,
        component: Optional[str] = None,
        correlation_id: Optional[str] = None,
        request_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        correlation = correlation_id or request_id or uuid.uuid4().hex[:8]
        self.context: Dict[str, Any] = {
            "namespace": namespace or "N/A",
            "operation": operation or "N/A",
            "component": component,
            "correlation_id": correlation,
            "request_id": request_id or correlation,
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    namespace: Optional[str] = None,
    operation: Optional[str] = None,
    component: Optional[str] = None,
    correlation_id: Optional[str] = None,
    request_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """Merge fields into the current context without a scope; None leaves a field as is."""
    context = dict(_log_context.get({}))
    updates = {"namespace": namespace, "operation": operation, "component": component}
    context.update({key: value for key, value in updates.items() if value is not None})

    if correlation_id:
        context["correlation_id"] = correlation_id
    if request_id:
        context["request_id"] = request_id
        context.setdefault("correlation_id", request_id)

    context.update(extra)
    _log_context.set(context)


def clear_log_context() -> None:
    _log_context.set({})


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))
