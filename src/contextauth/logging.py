"""Centralized logging utilities for contextauth.

This module provides:
- Logging configuration from SharedConfig
- Safe preview utilities for untrusted input
- Secret redaction (keys, bearer tokens, compact JWTs)
- Structured logging with tenant/entity context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import LogLevel, SharedConfig

# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)',
    r'eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]*',  # Compact JWS
    r'(?i)(?:-----BEGIN\s+(?:RSA\s+|EC\s+)?(?:PRIVATE\s+)?KEY-----).*?(?:-----END\s+(?:RSA\s+|EC\s+)?(?:PRIVATE\s+)?KEY-----)',
]

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
    "tenant_id", "entity_id",
}


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded, single-line preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (keys, tokens, passwords, PEM blocks) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview plus optional redaction. Use this for anything user supplied."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class AuthLogFormatter(logging.Formatter):
    """Formatter that includes tenant/entity context and can emit JSON.

    - Extracts ``tenant_id`` / ``entity_id`` from log records (if available)
    - Formats logs as JSON or plain text
    - Redacts secrets automatically
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        tenant_id = getattr(record, "tenant_id", None)
        entity_id = getattr(record, "entity_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            if tenant_id:
                log_data["tenant_id"] = tenant_id
            if entity_id:
                log_data["entity_id"] = entity_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if self.include_context and tenant_id:
            parts.append(f"tenant_id={tenant_id}")
        if self.include_context and entity_id:
            parts.append(f"entity_id={entity_id}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class AuthLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds tenant_id and entity_id to log records.

    Usage:
        logger = get_auth_logger(__name__, tenant_id="tenant-a")
        logger.info("Resolved session", entity_id="entity-a")
    """

    def __init__(
        self,
        logger: logging.Logger,
        tenant_id: Optional[str] = None,
        entity_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.tenant_id = tenant_id
        self.entity_id = entity_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        tenant_id = kwargs.pop("tenant_id", self.tenant_id)
        entity_id = kwargs.pop("entity_id", self.entity_id)

        extra = kwargs.get("extra", {})
        if tenant_id:
            extra["tenant_id"] = tenant_id
        if entity_id:
            extra["entity_id"] = entity_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[SharedConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging from SharedConfig.

    Args:
        config: SharedConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_shared_config_from_env

        config = load_shared_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        AuthLogFormatter(
            include_context=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_auth_logger(
    name: str,
    tenant_id: Optional[str] = None,
    entity_id: Optional[str] = None,
) -> AuthLoggerAdapter:
    """Get a logger adapter carrying tenant/entity context.

    Example:
        logger = get_auth_logger(__name__, tenant_id=session.tenant_id)
        logger.info("Loaded %d roles", len(roles))
    """
    return AuthLoggerAdapter(logging.getLogger(name), tenant_id=tenant_id, entity_id=entity_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "AuthLogFormatter",
    "AuthLoggerAdapter",
    "setup_logging",
    "get_auth_logger",
]
