"""
Structured logging for store operations.

Each log entry is a single JSON object carrying a timestamp, correlation ID,
operation name and event type, written through the 'identity_dynamodb'
logger. Sensitive fields (password hashes, security stamps, token values)
are redacted before anything is written.

Follows steering rules:
- Log operation lifecycle with correlation ID
- Log errors with context (no sensitive data)
- Use consistent log format
"""

import asyncio
import functools
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ulid import ULID

from .errors import DomainError
from .metrics import MetricsClient, create_metrics_client


_logger = logging.getLogger('identity_dynamodb')

# Sensitive field names that should never be logged (compared lowercased)
SENSITIVE_FIELDS = {
    'password',
    'passwordhash',
    'password_hash',
    'securitystamp',
    'security_stamp',
    'token',
    'value',
    'secret',
    'authorization',
    'credentials',
    'accesstoken',
    'access_token',
    'refreshtoken',
    'refresh_token',
}


class StructuredLogger:
    """
    Structured logger for one store operation.

    Usage:
        logger = StructuredLogger(operation='user-store.find-by-id')
        logger.log_operation_start(userId='01H...')
        # ... run the operation ...
        logger.log_operation_complete(found=True)
        logger.publish_metrics()
    """

    def __init__(
        self,
        operation: str,
        correlation_id: Optional[str] = None,
        metrics: Optional[MetricsClient] = None
    ):
        self.correlation_id = correlation_id or str(ULID())
        self.operation = operation
        self.start_time = time.time()
        self.metrics = metrics

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove sensitive fields from log data, recursing into dicts and lists.
        """
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if str(key).lower() in SENSITIVE_FIELDS:
                sanitized[key] = '[REDACTED]'
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            elif isinstance(value, list):
                sanitized[key] = [
                    self._sanitize_data(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                sanitized[key] = value

        return sanitized

    def _latency_ms(self) -> int:
        return int((time.time() - self.start_time) * 1000)

    def _log(self, level: int, event: str, **kwargs: Any) -> None:
        if not _logger.isEnabledFor(level):
            return

        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'correlationId': self.correlation_id,
            'operation': self.operation,
            'event': event,
            **self._sanitize_data(kwargs)
        }
        _logger.log(level, json.dumps(log_entry, default=str))

    def log_operation_start(self, **additional_fields: Any) -> None:
        self._log(logging.DEBUG, 'operation_start', **additional_fields)

    def log_operation_complete(self, **additional_fields: Any) -> None:
        """
        Log operation completion with latency and emit request metrics.
        """
        latency_ms = self._latency_ms()
        self._log(
            logging.DEBUG,
            'operation_complete',
            latencyMs=latency_ms,
            **additional_fields
        )

        if self.metrics:
            self.metrics.emit_request_count()
            self.metrics.emit_latency(latency_ms)

    def log_domain_error(
        self,
        error_code: str,
        error_message: str,
        **additional_fields: Any
    ) -> None:
        """
        Log an expected domain error (invalid argument, cancellation, ...).
        """
        latency_ms = self._latency_ms()
        self._log(
            logging.WARNING,
            'domain_error',
            errorCode=error_code,
            errorMessage=error_message,
            latencyMs=latency_ms,
            **additional_fields
        )

        if self.metrics:
            self.metrics.emit_error(error_code=error_code)
            self.metrics.emit_latency(latency_ms)

    def log_unexpected_error(
        self,
        error_type: str,
        error_message: str,
        **additional_fields: Any
    ) -> None:
        """
        Log an unexpected error, typically a DynamoDB or transport failure.
        """
        latency_ms = self._latency_ms()
        self._log(
            logging.ERROR,
            'unexpected_error',
            errorType=error_type,
            errorMessage=error_message,
            latencyMs=latency_ms,
            **additional_fields
        )

        if self.metrics:
            self.metrics.emit_error(error_code='INTERNAL_ERROR')
            self.metrics.emit_latency(latency_ms)

    def log_info(self, message: str, **additional_fields: Any) -> None:
        self._log(logging.INFO, 'info', message=message, **additional_fields)

    def publish_metrics(self) -> None:
        if self.metrics:
            self.metrics.publish()


T = TypeVar('T')


def logged_operation(
    operation: str
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorate an async store method with lifecycle logging and metrics.

    The decorated method's instance must expose `log_name` and `options`.
    Errors are logged and re-raised unchanged.

    Example:
        @logged_operation('find-by-id')
        async def find_by_id(self, user_id, cancel_event=None):
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            name = f'{self.log_name}.{operation}'
            log = StructuredLogger(
                operation=name,
                metrics=create_metrics_client(name, self.options)
            )
            log.log_operation_start()
            try:
                result = await func(self, *args, **kwargs)
                log.log_operation_complete()
                return result
            except DomainError as error:
                log.log_domain_error(error.code, error.message, details=error.details)
                raise
            except Exception as error:
                log.log_unexpected_error(type(error).__name__, str(error))
                raise
            finally:
                if log.metrics:
                    await asyncio.to_thread(log.publish_metrics)

        return wrapper

    return decorator


def create_logger(operation: str, options: Any = None) -> StructuredLogger:
    """
    Create a structured logger for a non-store operation such as table setup.
    """
    return StructuredLogger(operation, metrics=create_metrics_client(operation, options))
