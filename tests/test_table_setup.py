"""
Tests for provisioning the identity table.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from identity_dynamodb import (
    ArgumentNullError,
    DynamoDbOptions,
    DynamoDbTableSetup,
    DynamoDbUser,
    DynamoDbUserStore,
    OperationCancelledError,
    OptionsMonitor,
    TableProvisioningError,
    ensure_initialized,
    ensure_initialized_async,
)
from identity_dynamodb.schema import INDEX_KEYS, NORMALIZED_EMAIL_INDEX, get_table_definition
from identity_dynamodb.table_setup import is_table_active


def _index_names(dynamodb, table_name='identity'):
    table = dynamodb.describe_table(TableName=table_name)['Table']
    return sorted(index['IndexName'] for index in table.get('GlobalSecondaryIndexes', []))


def _fake_client(statuses, create_status=200):
    """MagicMock client whose describe_table walks through the given statuses."""
    client = MagicMock()
    client.list_tables.return_value = {'TableNames': []}
    client.create_table.return_value = {'ResponseMetadata': {'HTTPStatusCode': create_status}}
    client.describe_table.side_effect = [
        {'Table': {'TableStatus': status, 'GlobalSecondaryIndexes': []}}
        for status in statuses
    ]
    return client


class TestEnsureInitialized:
    """Test table creation and index backfill against moto."""

    async def test_creates_table_with_all_indexes(self, dynamodb, monitor):
        await ensure_initialized_async(monitor)

        assert dynamodb.list_tables()['TableNames'] == ['identity']
        assert _index_names(dynamodb) == sorted(INDEX_KEYS)

    async def test_running_setup_twice_is_idempotent(self, dynamodb, monitor):
        await ensure_initialized_async(monitor)
        await ensure_initialized_async(monitor)

        assert dynamodb.list_tables()['TableNames'] == ['identity']
        assert len(_index_names(dynamodb)) == 7

    async def test_existing_data_survives_setup(self, monitor):
        await ensure_initialized_async(monitor)
        store = DynamoDbUserStore(monitor)
        user = DynamoDbUser(user_name='alice')
        await store.create(user)

        await ensure_initialized_async(monitor)

        assert await store.find_by_id(user.id) == user

    async def test_missing_indexes_are_added(self, dynamodb, options):
        definition = get_table_definition('identity')
        definition['GlobalSecondaryIndexes'] = [
            index for index in definition['GlobalSecondaryIndexes']
            if index['IndexName'] != NORMALIZED_EMAIL_INDEX
        ]
        definition['AttributeDefinitions'] = [
            attribute for attribute in definition['AttributeDefinitions']
            if attribute['AttributeName'] != 'NormalizedEmail'
        ]
        dynamodb.create_table(**definition)
        assert NORMALIZED_EMAIL_INDEX not in _index_names(dynamodb)

        setup = DynamoDbTableSetup(OptionsMonitor(options))
        await setup.ensure_initialized()

        assert _index_names(dynamodb) == sorted(INDEX_KEYS)
        assert await setup.update_secondary_indexes() == []

    async def test_custom_table_name(self, dynamodb, options):
        monitor = OptionsMonitor(options.with_changes(table_name='tenant-a'))
        await ensure_initialized_async(monitor)

        assert dynamodb.list_tables()['TableNames'] == ['tenant-a']
        assert monitor.aliases.resolve('identity') == 'tenant-a'

    async def test_provisioned_throughput_is_forwarded(self, dynamodb, options):
        throughput = {'ReadCapacityUnits': 7, 'WriteCapacityUnits': 2}
        monitor = OptionsMonitor(options.with_changes(
            billing_mode='PROVISIONED',
            provisioned_throughput=throughput
        ))

        await ensure_initialized_async(monitor)

        table = dynamodb.describe_table(TableName='identity')['Table']
        assert table['ProvisionedThroughput']['ReadCapacityUnits'] == 7
        assert table['ProvisionedThroughput']['WriteCapacityUnits'] == 2

    def test_sync_entry_point(self, dynamodb, options):
        ensure_initialized(options)
        assert dynamodb.list_tables()['TableNames'] == ['identity']

    async def test_cancelled_setup_makes_no_calls(self):
        client = _fake_client([])
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(OperationCancelledError):
            await DynamoDbTableSetup(DynamoDbOptions(database=client)).ensure_initialized(cancel_event)

        client.list_tables.assert_not_called()


class TestWaitForActiveTable:
    """Test polling until the table reports ACTIVE."""

    async def test_polls_until_active(self):
        client = _fake_client(['CREATING', 'CREATING', 'ACTIVE'])
        setup = DynamoDbTableSetup(DynamoDbOptions(database=client, poll_interval=0))

        await setup.ensure_initialized()

        assert client.describe_table.call_count == 3
        client.create_table.assert_called_once()

    async def test_existing_table_is_awaited_before_use(self):
        """Test setup waits for a table another process is still creating."""
        indexes = [{'IndexName': name, 'IndexStatus': 'ACTIVE'} for name in INDEX_KEYS]
        client = MagicMock()
        client.list_tables.return_value = {'TableNames': ['identity']}
        client.describe_table.side_effect = [
            {'Table': {'TableStatus': 'CREATING', 'GlobalSecondaryIndexes': indexes}},
            {'Table': {'TableStatus': 'ACTIVE', 'GlobalSecondaryIndexes': indexes}},
            {'Table': {'TableStatus': 'ACTIVE', 'GlobalSecondaryIndexes': indexes}},
        ]
        setup = DynamoDbTableSetup(DynamoDbOptions(database=client, poll_interval=0))

        await setup.ensure_initialized()

        assert client.describe_table.call_count == 3
        client.create_table.assert_not_called()
        client.update_table.assert_not_called()

    async def test_gives_up_after_max_poll_attempts(self):
        client = _fake_client(['CREATING'] * 5)
        setup = DynamoDbTableSetup(
            DynamoDbOptions(database=client, poll_interval=0, max_poll_attempts=2)
        )

        with pytest.raises(TableProvisioningError) as exc_info:
            await setup.ensure_initialized()

        assert exc_info.value.code == 'PROVISIONING_ERROR'
        assert client.describe_table.call_count == 2

    async def test_rejected_create_raises(self):
        client = _fake_client([], create_status=500)
        setup = DynamoDbTableSetup(DynamoDbOptions(database=client, table_name='broken'))

        with pytest.raises(TableProvisioningError) as exc_info:
            await setup.ensure_initialized()

        assert str(exc_info.value) == "Couldn't create table broken"
        client.describe_table.assert_not_called()

    def test_index_status_counts(self):
        assert is_table_active({'TableStatus': 'ACTIVE'})
        assert not is_table_active({'TableStatus': 'UPDATING'})
        assert not is_table_active({
            'TableStatus': 'ACTIVE',
            'GlobalSecondaryIndexes': [{'IndexName': 'a', 'IndexStatus': 'CREATING'}],
        })


class TestConstruction:
    """Test setup argument validation."""

    def test_missing_options(self):
        with pytest.raises(ArgumentNullError) as exc_info:
            DynamoDbTableSetup(None)
        assert exc_info.value.param_name == 'options'

    def test_missing_client(self):
        with pytest.raises(ArgumentNullError) as exc_info:
            DynamoDbTableSetup(DynamoDbOptions())
        assert exc_info.value.param_name == 'database'
