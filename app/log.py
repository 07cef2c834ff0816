"""Structured logging configuration.

Uses structlog routed through stdlib logging so that third-party libraries
(uvicorn, httpx, botocore) and application modules share one output format.

Sensitive values are scrubbed from every event before rendering. PII
(emails, phone numbers, addresses, IPs) is additionally scrubbed when the
application runs in production.
"""
import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

from . import config

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS: tuple[str, ...] = (
    "password",
    "token",
    "secret",
    "api_key",
    "apikey",
    "authorization",
    "cookie",
    "session",
    "credit_card",
    "card_number",
    "cvv",
)

PII_FIELDS: tuple[str, ...] = (
    "email",
    "phone",
    "address",
    "ip_address",
)

# Loggers that are too chatty below WARNING
_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "botocore",
    "boto3",
    "urllib3",
)

# Keys added by structlog itself; never redacted
_RESERVED_KEYS = {"event", "level", "timestamp", "logger", "_record", "_from_structlog"}


def _is_sensitive(key: str, include_pii: bool) -> bool:
    lowered = key.lower()
    if any(field in lowered for field in SENSITIVE_FIELDS):
        return True
    return include_pii and any(field in lowered for field in PII_FIELDS)


def redact(value: Any, include_pii: bool = False) -> Any:
    """Return a copy of value with sensitive keys replaced by REDACTED.

    Walks nested dicts, lists and tuples. Key matching is a case-insensitive
    substring match, so ``user_email`` and ``X-Api-Key`` are both caught.
    """
    if isinstance(value, dict):
        return {
            key: REDACTED if isinstance(key, str) and _is_sensitive(key, include_pii)
            else redact(item, include_pii)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(item, include_pii) for item in value)
    return value


def redact_processor(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor applying :func:`redact` to the event fields."""
    include_pii = config.IS_PRODUCTION
    for key in list(event_dict):
        if key in _RESERVED_KEYS:
            continue
        if _is_sensitive(key, include_pii):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = redact(event_dict[key], include_pii)
    return event_dict


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop ProcessorFormatter bookkeeping keys from the rendered output."""
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Configure structlog and stdlib logging.

    Args:
        json_output: Emit JSON lines instead of the console renderer
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_processor,
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module (typically ``__name__``)."""
    return structlog.get_logger(name)
