"""Structured logging setup: structlog events rendered through stdlib handlers, redacted."""

from __future__ import annotations

import atexit
import json
import logging
import math
import re
import sys
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, TextIO

import structlog

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

REDACTED_VALUE: Final[str] = "***REDACTED***"
DEFAULT_LOGGER_NAME: Final[str] = "dossier"
DEFAULT_LEVEL: Final[str] = "WARNING"

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
)

_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(api[_-]?key|token|password|secret|authorization)\b\s*([:=])\s*([^\s,;]+)"
)
_BEARER_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*"
)
_GITHUB_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b"
)

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: LoggingHandle | None = None
_ATEXIT_REGISTERED = False


class _JsonLineFormatter(logging.Formatter):
    """One JSON object per record; structlog key/values land under ``fields``."""

    def __init__(self, *, redactor: LogRedactor) -> None:
        super().__init__()
        self._redactor = redactor

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "event": _as_text(self._redactor(record.getMessage())),
        }
        extras = _extract_extra_fields(record)
        if extras:
            event["fields"] = self._redactor(extras)
        if record.exc_info is not None:
            event["exception"] = _as_text(self._redactor(self.formatException(record.exc_info)))
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class _ConsoleFormatter(logging.Formatter):
    """``level: event key=value ...`` for terminals."""

    def __init__(self, *, redactor: LogRedactor) -> None:
        super().__init__()
        self._redactor = redactor

    def format(self, record: logging.LogRecord) -> str:
        parts = [f"{record.levelname.lower()}: {_as_text(self._redactor(record.getMessage()))}"]
        extras = self._redactor(_extract_extra_fields(record))
        if isinstance(extras, dict):
            for key, value in sorted(extras.items()):
                parts.append(f"{key}={_as_text(value)}")
        line = " ".join(parts)
        if record.exc_info is not None:
            line = f"{line}\n{_as_text(self._redactor(self.formatException(record.exc_info)))}"
        return line


@dataclass(slots=True)
class LoggingHandle:
    """Active logging setup; ``shutdown`` flushes and detaches its handlers."""

    logger: logging.Logger
    handlers: tuple[logging.Handler, ...]
    log_path: Path | None = None
    is_shutdown: bool = False

    def flush(self) -> None:
        for handler in self.handlers:
            handler.flush()

    def shutdown(self) -> None:
        if self.is_shutdown:
            return
        for handler in self.handlers:
            handler.flush()
            self.logger.removeHandler(handler)
            handler.close()
        self.is_shutdown = True


def setup_logging(
    level: int | str = DEFAULT_LEVEL,
    *,
    log_file: Path | str | None = None,
    json_output: bool = False,
    stream: TextIO | None = None,
    logger_name: str = DEFAULT_LOGGER_NAME,
    redactor: LogRedactor | None = None,
) -> LoggingHandle:
    """Route structlog through the ``dossier`` stdlib logger.

    Console output goes to ``stream`` (stderr by default), human-readable unless
    ``json_output``. ``log_file`` always receives JSON lines. Values are redacted before
    they reach any sink.
    """

    _shutdown_previous_active_handle()

    resolved_level = parse_log_level(level)
    active_redactor = redactor if redactor is not None else default_log_redactor

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setLevel(resolved_level)
    console.setFormatter(
        _JsonLineFormatter(redactor=active_redactor)
        if json_output
        else _ConsoleFormatter(redactor=active_redactor)
    )
    handlers: list[logging.Handler] = [console]

    log_path: Path | None = None
    if log_file is not None:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        # The file keeps full detail regardless of the console level.
        file_handler.setLevel(min(resolved_level, logging.DEBUG))
        file_handler.setFormatter(_JsonLineFormatter(redactor=active_redactor))
        handlers.append(file_handler)

    logger = logging.getLogger(logger_name)
    logger.setLevel(min(handler.level for handler in handlers))
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    for handler in handlers:
        logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handle = LoggingHandle(logger=logger, handlers=tuple(handlers), log_path=log_path)
    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        _ACTIVE_HANDLE = handle
    _register_atexit_shutdown()
    return handle


def shutdown_logging(handle: LoggingHandle | None = None) -> None:
    """Detach handlers and restore structlog defaults. Safe to call repeatedly."""

    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        resolved = handle if handle is not None else _ACTIVE_HANDLE
        if resolved is None:
            return
        if _ACTIVE_HANDLE is resolved:
            _ACTIVE_HANDLE = None
    resolved.shutdown()
    structlog.reset_defaults()


def get_active_logging_handle() -> LoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


def parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    parsed = logging.getLevelName(value.strip().upper())
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Deep redaction of secret-named keys and secret-looking strings."""

    return _redact_value(value, key_context=None)


def redact_text(text: str) -> str:
    redacted = _SENSITIVE_ASSIGNMENT_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}{REDACTED_VALUE}", text
    )
    redacted = _BEARER_TOKEN_PATTERN.sub(f"Bearer {REDACTED_VALUE}", redacted)
    return _GITHUB_TOKEN_PATTERN.sub(REDACTED_VALUE, redacted)


def _shutdown_previous_active_handle() -> None:
    with _ACTIVE_HANDLE_LOCK:
        global _ACTIVE_HANDLE
        existing = _ACTIVE_HANDLE
        _ACTIVE_HANDLE = None
    if existing is not None:
        existing.shutdown()


def _register_atexit_shutdown() -> None:
    global _ATEXIT_REGISTERED
    if _ATEXIT_REGISTERED:
        return
    atexit.register(shutdown_logging)
    _ATEXIT_REGISTERED = True


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, datetime):
        aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return aware.astimezone(UTC).isoformat().replace("+00:00", "Z")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_json_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize_json_value(item) for item in value), key=repr)
    return repr(value)


def _redact_value(value: JSONValue, *, key_context: str | None) -> JSONValue:
    if key_context is not None and _is_sensitive_key(key_context):
        return REDACTED_VALUE
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, list):
        return [_redact_value(item, key_context=None) for item in value]
    if isinstance(value, dict):
        return {key: _redact_value(item, key_context=key) for key, item in value.items()}
    return value


def _is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    # Counters such as ``tokens=`` (size estimates) are not credentials.
    if lowered in {"tokens", "token_estimate"}:
        return False
    return any(term in lowered for term in _SENSITIVE_KEY_TERMS)


__all__ = [
    "DEFAULT_LEVEL",
    "DEFAULT_LOGGER_NAME",
    "JSONScalar",
    "JSONValue",
    "LogRedactor",
    "LoggingHandle",
    "REDACTED_VALUE",
    "default_log_redactor",
    "get_active_logging_handle",
    "parse_log_level",
    "redact_text",
    "setup_logging",
    "shutdown_logging",
]
