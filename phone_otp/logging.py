"""
Structured Logging
==================
structlog configuration for services embedding the OTP flow.

Usage:
    from phone_otp.logging import setup_logging

    setup_logging(service_name="clinic-auth", json_output=True)

Modules log with ``structlog.get_logger(__name__)``. A redaction processor
masks secret-bearing keys so that an OTP code can never reach a log sink,
even if a caller passes one by mistake.
"""

import logging
import sys
from typing import Any, MutableMapping

import structlog

SENSITIVE_KEYS = frozenset({
    "code",
    "otp",
    "password",
    "hash_key",
    "secret",
    "token",
    "registration_token",
    "authorization",
})

REDACTED = "***"


def redact_secrets(data: Any) -> Any:
    """Recursively mask values stored under sensitive keys."""
    if isinstance(data, dict):
        out = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                out[key] = REDACTED
            else:
                out[key] = redact_secrets(value)
        return out
    if isinstance(data, list):
        return [redact_secrets(v) for v in data]
    if isinstance(data, tuple):
        return tuple(redact_secrets(v) for v in data)
    return data


def _redact_processor(_, __, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    return redact_secrets(dict(event_dict))


def _add_service(service_name: str):
    def processor(_, __, event_dict):
        event_dict.setdefault("service", service_name)
        return event_dict
    return processor


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """
    Configure stdlib logging and structlog for a service.

    Args:
        service_name: Name added to every event
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON (production) instead of console output
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service(service_name),
            _redact_processor,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info("Logging configured", level=level.upper())
