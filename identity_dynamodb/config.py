"""
Options for the DynamoDB identity stores.

Options can be built in code or loaded from environment variables. Loading
from the environment follows the "read once at startup, validate on boot"
rule: every invalid variable is collected and reported in a single
ConfigurationError.

An OptionsMonitor holds the current options for every store sharing them and
notifies listeners on reconfiguration. It owns the table alias registry and
keeps it pointing at the configured table name.
"""

import os
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from .aliases import TableAliasRegistry
from .errors import ConfigurationError
from .schema import DEFAULT_TABLE_NAME
from .types import BillingMode, ProvisionedThroughput


BILLING_MODES = ('PAY_PER_REQUEST', 'PROVISIONED')
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_METRICS_NAMESPACE = 'IdentityDynamoDb'


def _default_throughput() -> ProvisionedThroughput:
    return {'ReadCapacityUnits': 1, 'WriteCapacityUnits': 1}


@dataclass
class DynamoDbOptions:
    """
    Configuration shared by the table setup and the stores.

    Attributes:
        table_name: Physical table name (defaults to the logical name 'identity')
        database: boto3 DynamoDB client used by setup and stores
        billing_mode: PAY_PER_REQUEST or PROVISIONED
        provisioned_throughput: Capacity used only in PROVISIONED mode
        poll_interval: Seconds between table status checks during setup
        max_poll_attempts: Bound on status checks; None waits indefinitely
        cloudwatch: Optional boto3 CloudWatch client; enables metrics
        metrics_namespace: CloudWatch namespace for emitted metrics
    """
    table_name: str = DEFAULT_TABLE_NAME
    database: Any = None
    billing_mode: BillingMode = 'PAY_PER_REQUEST'
    provisioned_throughput: ProvisionedThroughput = field(default_factory=_default_throughput)
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_attempts: Optional[int] = None
    cloudwatch: Any = None
    metrics_namespace: str = DEFAULT_METRICS_NAMESPACE

    def with_changes(self, **changes: Any) -> 'DynamoDbOptions':
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def load_options_from_env(
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any
) -> DynamoDbOptions:
    """
    Load and validate options from environment variables.

    Recognized variables (all optional):
        IDENTITY_TABLE_NAME: physical table name
        IDENTITY_BILLING_MODE: PAY_PER_REQUEST or PROVISIONED
        IDENTITY_READ_CAPACITY / IDENTITY_WRITE_CAPACITY: positive integers
        IDENTITY_POLL_INTERVAL: non-negative number of seconds

    Args:
        environ: Mapping to read from (defaults to os.environ)
        **overrides: Fields set directly on the result, e.g. database=client

    Returns:
        DynamoDbOptions

    Raises:
        ConfigurationError: If any variable is present but invalid
    """
    environ = os.environ if environ is None else environ
    errors: List[Dict[str, str]] = []
    values: Dict[str, Any] = {}

    table_name = environ.get('IDENTITY_TABLE_NAME')
    if table_name is not None:
        if not table_name.strip():
            errors.append({'field': 'IDENTITY_TABLE_NAME', 'message': 'Table name cannot be empty'})
        else:
            values['table_name'] = table_name.strip()

    billing_mode = environ.get('IDENTITY_BILLING_MODE')
    if billing_mode is not None:
        if billing_mode not in BILLING_MODES:
            errors.append({
                'field': 'IDENTITY_BILLING_MODE',
                'message': f'Billing mode must be one of: {", ".join(BILLING_MODES)}'
            })
        else:
            values['billing_mode'] = billing_mode

    throughput = _default_throughput()
    for var, key in (
        ('IDENTITY_READ_CAPACITY', 'ReadCapacityUnits'),
        ('IDENTITY_WRITE_CAPACITY', 'WriteCapacityUnits'),
    ):
        raw = environ.get(var)
        if raw is None:
            continue
        try:
            units = int(raw)
        except ValueError:
            units = 0
        if units < 1:
            errors.append({'field': var, 'message': 'Capacity must be a positive integer'})
        else:
            throughput[key] = units
    values['provisioned_throughput'] = throughput

    poll_interval = environ.get('IDENTITY_POLL_INTERVAL')
    if poll_interval is not None:
        try:
            interval = float(poll_interval)
        except ValueError:
            interval = -1.0
        if interval < 0:
            errors.append({
                'field': 'IDENTITY_POLL_INTERVAL',
                'message': 'Poll interval must be a non-negative number'
            })
        else:
            values['poll_interval'] = interval

    if errors:
        raise ConfigurationError(
            f"Invalid environment variables: {', '.join(e['field'] for e in errors)}",
            {'errors': errors}
        )

    values.update(overrides)
    return DynamoDbOptions(**values)


OptionsListener = Callable[[DynamoDbOptions], None]


class OptionsMonitor:
    """
    Reactive holder for the current DynamoDbOptions.

    Stores read table_name (through the alias) and database on every call,
    so both take effect after update without recreating a store. Setup
    options such as billing_mode apply on the next ensure_initialized.

    Usage:
        monitor = OptionsMonitor(DynamoDbOptions(database=client))
        unsubscribe = monitor.on_change(lambda options: ...)
        monitor.update(monitor.current_value.with_changes(table_name='custom'))
    """

    def __init__(
        self,
        options: Optional[DynamoDbOptions] = None,
        aliases: Optional[TableAliasRegistry] = None
    ):
        self._lock = threading.Lock()
        self._options = options or DynamoDbOptions()
        self._listeners: List[OptionsListener] = []
        self.aliases = aliases or TableAliasRegistry()
        ensure_alias_created(self._options, self.aliases)

    @property
    def current_value(self) -> DynamoDbOptions:
        with self._lock:
            return self._options

    def on_change(self, listener: OptionsListener) -> Callable[[], None]:
        """
        Register a listener called with the new options after each update.

        Returns:
            Callable that unregisters the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def update(self, options: DynamoDbOptions) -> None:
        """Replace the current options, resync the alias, notify listeners."""
        with self._lock:
            self._options = options
            listeners = list(self._listeners)
        ensure_alias_created(options, self.aliases)
        for listener in listeners:
            listener(options)


def ensure_alias_created(options: DynamoDbOptions, aliases: TableAliasRegistry) -> None:
    """
    Point the logical table name at the configured table.

    A configuration back at the default name removes the alias, so no stale
    redirection survives a reconfiguration.
    """
    if options.table_name and options.table_name != DEFAULT_TABLE_NAME:
        aliases.add_alias(DEFAULT_TABLE_NAME, options.table_name)
    else:
        aliases.remove_alias(DEFAULT_TABLE_NAME)
