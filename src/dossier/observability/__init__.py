"""Public observability primitives: structured, redacted logging."""

from dossier.observability.logging import (
    REDACTED_VALUE,
    LoggingHandle,
    LogRedactor,
    default_log_redactor,
    get_active_logging_handle,
    parse_log_level,
    redact_text,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "REDACTED_VALUE",
    "LogRedactor",
    "LoggingHandle",
    "default_log_redactor",
    "get_active_logging_handle",
    "parse_log_level",
    "redact_text",
    "setup_logging",
    "shutdown_logging",
]
