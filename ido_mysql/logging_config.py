# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Structured logging configuration.

Uses structlog on top of the stdlib logging module. Two processors keep
secrets out of the output:

- SensitiveDataMasker masks values whose *key* looks sensitive (password, ...)
- SecretValueRedactor replaces registered literal secret *values* wherever
  they appear, including inside free-form strings such as command echoes
"""

import logging
import re
import sys
from collections import Counter
from typing import Any, Literal

import structlog
from structlog.types import Processor

from .config import get_settings
from .errors import REDACTED, redact

# Reference counted so overlapping passes sharing a secret keep it redacted
_registered_secrets: Counter[str] = Counter()


class SensitiveDataMasker:
    """Processor to mask sensitive keys in log output."""

    def __init__(self, patterns: list[str], mask_value: str = REDACTED):
        self.patterns = [re.compile(p, re.IGNORECASE) for p in patterns]
        self.mask_value = mask_value

    def __call__(
        self, logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        return self._mask_dict(event_dict)

    def _mask_dict(self, d: dict[str, Any]) -> dict[str, Any]:
        """Recursively mask sensitive keys in a dict."""
        result = {}
        for key, value in d.items():
            if key != "event" and any(pattern.search(key) for pattern in self.patterns):
                result[key] = self.mask_value
            elif isinstance(value, dict):
                result[key] = self._mask_dict(value)
            elif isinstance(value, list):
                result[key] = [
                    self._mask_dict(v) if isinstance(v, dict) else v for v in value
                ]
            else:
                result[key] = value
        return result


class SecretValueRedactor:
    """Processor replacing registered secret values anywhere in the event."""

    def __call__(
        self, logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        if not _registered_secrets:
            return event_dict
        return redact(event_dict, _registered_secrets)


def register_secret(value: str) -> None:
    """Register a literal secret so it is redacted from all log output.

    Every call must be paired with release_secret once the secret is no
    longer in use.
    """
    if value:
        _registered_secrets[value] += 1


def release_secret(value: str) -> None:
    if not value or value not in _registered_secrets:
        return
    _registered_secrets[value] -= 1
    if _registered_secrets[value] <= 0:
        del _registered_secrets[value]


def forget_secrets() -> None:
    _registered_secrets.clear()


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    if "component" not in event_dict:
        event_dict["component"] = "ido-mysql"
    return event_dict


def configure_logging(
    log_level: str = None,
    log_format: Literal["json", "text"] = None,
) -> None:
    """Configure structured logging for the process.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" for production, "text" for development)
    """
    settings = get_settings()
    level = log_level or settings.log_level
    fmt = log_format or settings.log_format

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    # Shared processors for all formats
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_app_context,
        SecretValueRedactor(),
    ]

    if settings.log_masking_enabled:
        shared_processors.append(SensitiveDataMasker(settings.log_masking_patterns_list))

    if fmt == "json":
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Applied resource", step="File[/etc/icinga2/...]", changed=True)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind context variables to all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
