"""Structured JSON logging with security sanitization.

Log records are emitted as JSON objects so that report ids, workspace ids and
vendor call metadata can be queried in log aggregation. Vendor API keys and
bearer tokens are redacted in production.
"""

import logging
import re
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pythonjsonlogger import jsonlogger

from .config import settings

# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
workspace_id_var: ContextVar[Optional[str]] = ContextVar('workspace_id', default=None)

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}


class SecuritySanitizer:
    """Sanitize sensitive information from logs."""

    SENSITIVE_PATTERNS = {
        'api_key': re.compile(r'(api[_-]?key["\s:=]+["\']?)([a-zA-Z0-9_-]{20,})', re.IGNORECASE),
        'query_key': re.compile(r'([?&]key=)([a-zA-Z0-9_-]{20,})', re.IGNORECASE),
        'bearer_token': re.compile(r'(bearer\s+)([a-zA-Z0-9_.-]{20,})', re.IGNORECASE),
        'secret': re.compile(r'(secret["\s:=]+["\']?)([a-zA-Z0-9_.-]{20,})', re.IGNORECASE),
        'jwt': re.compile(r'()(eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_.-]+)'),
        'email': re.compile(r'()\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'),
    }

    @classmethod
    def sanitize_string(cls, text: str) -> str:
        """Sanitize a string by redacting sensitive information."""
        if not isinstance(text, str):
            return str(text)

        sanitized = text
        for pattern in cls.SENSITIVE_PATTERNS.values():
            sanitized = pattern.sub(r'\1***REDACTED***', sanitized)
        return sanitized

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any], max_depth: int = 3) -> Dict[str, Any]:
        """Recursively sanitize a dictionary."""
        if max_depth <= 0:
            return {"...": "max_depth_reached"}

        sanitized: Dict[str, Any] = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in ['password', 'secret', 'token', 'api_key', 'auth']):
                sanitized[key] = "***REDACTED***"
            elif isinstance(value, dict):
                sanitized[key] = cls.sanitize_dict(value, max_depth - 1)
            elif isinstance(value, list):
                sanitized[key] = cls.sanitize_list(value, max_depth - 1)
            elif isinstance(value, str):
                sanitized[key] = cls.sanitize_string(value)
            else:
                sanitized[key] = value
        return sanitized

    @classmethod
    def sanitize_list(cls, data: List[Any], max_depth: int = 3) -> List[Any]:
        """Sanitize a list by sanitizing its elements."""
        if max_depth <= 0:
            return ["...max_depth_reached"]

        sanitized: List[Any] = []
        for item in data[:10]:  # Limit list length in logs
            if isinstance(item, dict):
                sanitized.append(cls.sanitize_dict(item, max_depth - 1))
            elif isinstance(item, list):
                sanitized.append(cls.sanitize_list(item, max_depth - 1))
            elif isinstance(item, str):
                sanitized.append(cls.sanitize_string(item))
            else:
                sanitized.append(item)

        if len(data) > 10:
            sanitized.append(f"...and {len(data) - 10} more items")
        return sanitized


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds service and request context to every record."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno
        log_record['service'] = settings.service_name
        log_record['environment'] = settings.service_env

        if request_id := request_id_var.get():
            log_record['request_id'] = request_id
        if user_id := user_id_var.get():
            log_record['user_id'] = user_id
        if workspace_id := workspace_id_var.get():
            log_record['workspace_id'] = workspace_id

        if settings.is_production:
            log_record['message'] = SecuritySanitizer.sanitize_string(log_record.get('message', ''))

        if record.exc_info and record.exc_info[0] is not None:
            exception_info = {
                'type': record.exc_info[0].__name__,
                'message': SecuritySanitizer.sanitize_string(str(record.exc_info[1])),
            }
            # Include traceback only in non-production
            if not settings.is_production:
                exception_info['traceback'] = traceback.format_exception(*record.exc_info)
            log_record['exception'] = exception_info
            log_record.pop('exc_info', None)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith('_'):
                continue
            if settings.is_production:
                if isinstance(value, dict):
                    value = SecuritySanitizer.sanitize_dict(value)
                elif isinstance(value, list):
                    value = SecuritySanitizer.sanitize_list(value)
                elif isinstance(value, str):
                    value = SecuritySanitizer.sanitize_string(value)
            log_record[key] = value


class StructuredLogger:
    """Structured logger with context management."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def with_context(self, **kwargs) -> 'StructuredLogger':
        """Bind request context for subsequent records."""
        for key, value in kwargs.items():
            if key == 'request_id':
                request_id_var.set(value)
            elif key == 'user_id':
                user_id_var.set(value)
            elif key == 'workspace_id':
                workspace_id_var.set(value)
        return self

    def _log(self, level: int, message: str, **kwargs):
        if settings.is_production:
            message = SecuritySanitizer.sanitize_string(message)
            kwargs = SecuritySanitizer.sanitize_dict(kwargs)
        self.logger.log(level, message, extra=kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def audit_event(self, action: str, resource: str, result: str, **kwargs):
        """Log audit events (share links issued, workspaces deleted)."""
        kwargs.update({
            'audit_event': True,
            'action': action,
            'resource': resource,
            'result': result,
        })
        self._log(logging.INFO, f"AUDIT: {action} on {resource} -> {result}", **kwargs)


class LoggerFactory:
    """Factory for creating structured loggers."""

    _loggers: Dict[str, StructuredLogger] = {}

    @classmethod
    def get_logger(cls, name: str) -> StructuredLogger:
        if name not in cls._loggers:
            cls._loggers[name] = StructuredLogger(name)
        return cls._loggers[name]


def build_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter('%(timestamp)s %(level)s %(name)s %(message)s'))
    return handler
