"""
Domain error classes for the DynamoDB identity stores.

These error classes provide explicit, typed exceptions with clear error codes
and messages. Concurrency conflicts are not exceptions; they are reported
through IdentityResult (see models.py).
"""

from typing import Dict, Any


class DomainError(Exception):
    """
    Base class for all domain errors.

    Every domain error carries a stable code, a human-readable message and
    optional structured details.
    """

    def __init__(self, code: str, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class ArgumentNullError(DomainError, ValueError):
    """
    Raised when a required argument is None or empty.

    Always raised before any call reaches DynamoDB.
    """

    def __init__(self, param_name: str):
        super().__init__(
            'INVALID_ARGUMENT',
            f"Value cannot be null or empty (parameter '{param_name}')",
            {'param_name': param_name}
        )
        self.param_name = param_name


class NotSupportedError(DomainError, NotImplementedError):
    """
    Raised by a store capability that the provider does not implement.
    """

    def __init__(self, operation: str):
        super().__init__(
            'NOT_SUPPORTED',
            f"Operation '{operation}' is not supported by this store",
            {'operation': operation}
        )
        self.operation = operation


class TableProvisioningError(DomainError):
    """
    Raised when the identity table or one of its indexes cannot be provisioned.

    Fatal for setup; never retried automatically.
    """

    def __init__(self, table_name: str, message: str = None):
        super().__init__(
            'PROVISIONING_ERROR',
            message or f"Couldn't create table {table_name}",
            {'table_name': table_name}
        )
        self.table_name = table_name


class OperationCancelledError(DomainError):
    """Raised when a caller cancels an operation before it completes."""

    def __init__(self, operation: str = None):
        super().__init__(
            'CANCELLED',
            'The operation was cancelled',
            {'operation': operation} if operation else {}
        )


class ConfigurationError(DomainError):
    """
    Raised when options or environment variables are missing or invalid.

    Details contain the offending setting names.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('CONFIGURATION_ERROR', message, details or {})
