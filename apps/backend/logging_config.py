"""
Zen AI Fax - Logging Configuration
==================================
One structlog pipeline for structlog loggers and standard library loggers.

Development renders console lines, production renders one JSON object per
line. Both outputs pass through the same redaction, so storage account keys,
SAS signatures and Document Intelligence keys never reach the log stream.
"""

import logging
import re
import sys
from typing import Any, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "zen-ai-fax"

REDACTED = "***REDACTED***"
MAX_VALUE_LENGTH = 1000

SENSITIVE_KEYS = (
    "password", "secret", "token", "authorization", "credential",
    "api_key", "account_key", "connection_string", "form_recognizer_key",
)

# Secret parts of storage connection strings and SAS URLs, e.g. in SDK errors
_SECRET_IN_TEXT = re.compile(
    r"(AccountKey=|SharedAccessSignature=|[?&]sig=)[^;&\s\"']+",
    re.IGNORECASE,
)

# The Azure SDKs log every HTTP request and response at INFO
NOISY_LOGGERS = (
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.storage.blob",
    "azure.ai.documentintelligence",
)

_handler: Optional[logging.Handler] = None


def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", APP_NAME)
    event_dict.setdefault("service", "backend")
    return event_dict


def _is_sensitive(key: Any) -> bool:
    key_lower = str(key).lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(key) else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    if isinstance(value, str):
        value = _SECRET_IN_TEXT.sub(lambda m: m.group(1) + REDACTED, value)
        if len(value) > MAX_VALUE_LENGTH:
            return value[:100] + "...[truncated]"
    return value


def sanitize_event(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact credentials from an event.

    Values under sensitive keys are replaced at any nesting depth (error
    payloads from ``to_dict()`` are nested dicts). Account keys and SAS
    signatures embedded in free text, such as the message of a failed
    ``from_connection_string`` call, are masked in place.
    """
    return _scrub(event_dict)


def configure_logging(
    environment: str = "development",
    level: str = "INFO",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure structlog and route standard library logging through it.

    Safe to call more than once: the handler installed by a previous call
    is replaced, not duplicated.

    Args:
        environment: "production" for JSON lines, anything else for console output
        level: Root logger level name
        stream: Output stream (defaults to stdout)
    """
    global _handler

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        sanitize_event,
    ]

    if environment == "production":
        renderers: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta] + renderers,
    ))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(level.upper())
    _handler = handler

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
