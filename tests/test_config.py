"""
Unit tests for options loading, the options monitor and table aliasing.
"""

import pytest

from identity_dynamodb import (
    ConfigurationError,
    DynamoDbOptions,
    OptionsMonitor,
    TableAliasRegistry,
    load_options_from_env,
)


class TestLoadOptionsFromEnv:
    """Test environment-based configuration."""

    def test_defaults_when_nothing_is_set(self):
        options = load_options_from_env({})

        assert options.table_name == 'identity'
        assert options.billing_mode == 'PAY_PER_REQUEST'
        assert options.provisioned_throughput == {'ReadCapacityUnits': 1, 'WriteCapacityUnits': 1}
        assert options.poll_interval == 5.0
        assert options.max_poll_attempts is None

    def test_reads_every_variable(self):
        options = load_options_from_env({
            'IDENTITY_TABLE_NAME': 'custom',
            'IDENTITY_BILLING_MODE': 'PROVISIONED',
            'IDENTITY_READ_CAPACITY': '10',
            'IDENTITY_WRITE_CAPACITY': '4',
            'IDENTITY_POLL_INTERVAL': '0.5',
        })

        assert options.table_name == 'custom'
        assert options.billing_mode == 'PROVISIONED'
        assert options.provisioned_throughput == {'ReadCapacityUnits': 10, 'WriteCapacityUnits': 4}
        assert options.poll_interval == 0.5

    def test_overrides_are_applied(self):
        client = object()
        options = load_options_from_env({}, database=client, max_poll_attempts=3)

        assert options.database is client
        assert options.max_poll_attempts == 3

    def test_every_invalid_variable_is_reported(self):
        """Test all invalid values are collected into one error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_options_from_env({
                'IDENTITY_TABLE_NAME': '   ',
                'IDENTITY_BILLING_MODE': 'ON_DEMAND',
                'IDENTITY_READ_CAPACITY': 'lots',
                'IDENTITY_WRITE_CAPACITY': '0',
                'IDENTITY_POLL_INTERVAL': '-1',
            })

        error = exc_info.value
        assert error.code == 'CONFIGURATION_ERROR'
        fields = [entry['field'] for entry in error.details['errors']]
        assert fields == [
            'IDENTITY_TABLE_NAME',
            'IDENTITY_BILLING_MODE',
            'IDENTITY_READ_CAPACITY',
            'IDENTITY_WRITE_CAPACITY',
            'IDENTITY_POLL_INTERVAL',
        ]


class TestOptionsMonitor:
    """Test reactive options and alias synchronization."""

    def test_default_table_name_needs_no_alias(self):
        monitor = OptionsMonitor(DynamoDbOptions())

        assert 'identity' not in monitor.aliases
        assert monitor.aliases.resolve('identity') == 'identity'

    def test_custom_table_name_registers_alias(self):
        monitor = OptionsMonitor(DynamoDbOptions(table_name='tenant-a'))
        assert monitor.aliases.resolve('identity') == 'tenant-a'

    def test_update_moves_alias_and_notifies_listeners(self):
        monitor = OptionsMonitor(DynamoDbOptions())
        seen = []
        monitor.on_change(seen.append)

        changed = monitor.current_value.with_changes(table_name='tenant-b')
        monitor.update(changed)

        assert monitor.current_value is changed
        assert seen == [changed]
        assert monitor.aliases.resolve('identity') == 'tenant-b'

    def test_update_back_to_default_removes_alias(self):
        monitor = OptionsMonitor(DynamoDbOptions(table_name='tenant-a'))
        monitor.update(DynamoDbOptions())

        assert 'identity' not in monitor.aliases
        assert monitor.aliases.aliases == {}

    def test_unsubscribed_listener_is_not_called(self):
        monitor = OptionsMonitor()
        seen = []
        unsubscribe = monitor.on_change(seen.append)

        unsubscribe()
        monitor.update(DynamoDbOptions(table_name='other'))

        assert seen == []

    def test_shared_registry_is_used(self):
        registry = TableAliasRegistry()
        OptionsMonitor(DynamoDbOptions(table_name='shared'), aliases=registry)
        assert registry.resolve('identity') == 'shared'
