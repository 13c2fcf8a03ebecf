"""
Argument and cancellation guards for store operations.

Follows the "fail fast" principle: every public store operation checks its
required arguments before any call reaches DynamoDB, and checks for
cancellation at entry and before each write.
"""

import asyncio
from typing import Any, Optional

from .errors import ArgumentNullError, OperationCancelledError


def require(value: Any, param_name: str) -> Any:
    """
    Ensure a required argument is present.

    None is always rejected. Strings must also be non-empty.

    Args:
        value: Argument value
        param_name: Parameter name reported in the error

    Returns:
        The value, unchanged

    Raises:
        ArgumentNullError: If the value is None or an empty string

    Examples:
        >>> require('abc', 'user_id')
        'abc'
    """
    if value is None or (isinstance(value, str) and value == ''):
        raise ArgumentNullError(param_name)
    return value


def require_all(**arguments: Any) -> None:
    """Validate several required arguments, in the order given."""
    for param_name, value in arguments.items():
        require(value, param_name)


def throw_if_cancelled(cancel_event: Optional[asyncio.Event], operation: str = None) -> None:
    """
    Raise OperationCancelledError if the caller has requested cancellation.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(operation)
