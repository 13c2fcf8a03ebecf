"""
Idempotent provisioning of the identity table.

This module implements:
- Table creation with every global secondary index in one call
- Backfill of indexes missing from an existing table
- Waiting until the table and all of its indexes are ACTIVE
- Registration of the table alias for a custom table name

Running setup again is safe: an existing table is never dropped or recreated
and indexes are never removed.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

from .backend import DynamoDbBackend
from .config import DynamoDbOptions, OptionsMonitor, ensure_alias_created
from .errors import ArgumentNullError, TableProvisioningError
from .logger import create_logger
from .schema import (
    INDEX_KEYS,
    get_attribute_definitions,
    get_index_definition,
    get_table_definition,
)
from .validation import throw_if_cancelled


ACTIVE = 'ACTIVE'


class DynamoDbTableSetup:
    """
    Provisions the identity table described by a set of options.

    Usage:
        setup = DynamoDbTableSetup(monitor)
        await setup.ensure_initialized()
    """

    def __init__(
        self,
        options: Union[DynamoDbOptions, OptionsMonitor],
        database: Any = None
    ):
        if options is None:
            raise ArgumentNullError('options')

        if isinstance(options, OptionsMonitor):
            self.options = options.current_value
            self.aliases = options.aliases
        else:
            self.options = options
            self.aliases = None

        client = database or self.options.database
        if client is None:
            raise ArgumentNullError('database')

        self.backend = DynamoDbBackend(client, self.aliases)
        self.log = create_logger('table-setup', self.options)

    @property
    def table_name(self) -> str:
        return self.options.table_name

    async def ensure_initialized(self, cancel_event: Optional[asyncio.Event] = None) -> None:
        """
        Make sure the table and all indexes exist and are ACTIVE.

        Raises:
            TableProvisioningError: If table creation is not acknowledged or
                the table does not become ACTIVE within max_poll_attempts
        """
        throw_if_cancelled(cancel_event, 'ensure-initialized')

        if self.aliases is not None:
            ensure_alias_created(self.options, self.aliases)

        try:
            table_names = await self.backend.list_tables()
            if self.table_name not in table_names:
                await self._create_table(cancel_event)
            else:
                # Another process may still be creating or updating the table
                await self.wait_for_active_table(cancel_event)
                await self.update_secondary_indexes(cancel_event)
        finally:
            if self.log.metrics:
                await asyncio.to_thread(self.log.publish_metrics)

    async def _create_table(self, cancel_event: Optional[asyncio.Event]) -> None:
        definition = get_table_definition(
            self.table_name,
            self.options.billing_mode,
            self.options.provisioned_throughput
        )
        throw_if_cancelled(cancel_event, 'create-table')

        self.log.log_info('creating_table', tableName=self.table_name)
        response = await self.backend.create_table(definition)

        status_code = response.get('ResponseMetadata', {}).get('HTTPStatusCode')
        if status_code != 200:
            self.log.log_domain_error(
                'PROVISIONING_ERROR',
                f"Couldn't create table {self.table_name}",
                statusCode=status_code
            )
            raise TableProvisioningError(self.table_name)

        await self.wait_for_active_table(cancel_event)

    async def update_secondary_indexes(self, cancel_event: Optional[asyncio.Event] = None) -> List[str]:
        """
        Add every required index that the existing table lacks.

        DynamoDB accepts a single index creation per UpdateTable call, so
        missing indexes are added one at a time, each followed by a wait.

        Returns:
            Names of the indexes that were added
        """
        table = await self.backend.describe_table(self.table_name)
        existing = {
            index['IndexName']
            for index in table.get('GlobalSecondaryIndexes') or []
        }
        missing = [name for name in INDEX_KEYS if name not in existing]

        for index_name in missing:
            throw_if_cancelled(cancel_event, 'update-table')
            self.log.log_info(
                'adding_secondary_index',
                tableName=self.table_name,
                indexName=index_name
            )
            await self.backend.update_table(
                self.table_name,
                AttributeDefinitions=get_attribute_definitions([index_name]),
                GlobalSecondaryIndexUpdates=[{'Create': self._index_create_action(index_name)}]
            )
            await self.wait_for_active_table(cancel_event)

        return missing

    def _index_create_action(self, index_name: str) -> Dict[str, Any]:
        return get_index_definition(
            index_name,
            self.options.billing_mode,
            self.options.provisioned_throughput
        )

    async def wait_for_active_table(self, cancel_event: Optional[asyncio.Event] = None) -> None:
        """
        Poll the table until it and every index report ACTIVE.

        Sleeps poll_interval seconds between checks. Without
        max_poll_attempts the wait is unbounded.
        """
        attempts = 0
        while True:
            table = await self.backend.describe_table(self.table_name)
            if is_table_active(table):
                return

            attempts += 1
            max_attempts = self.options.max_poll_attempts
            if max_attempts is not None and attempts >= max_attempts:
                raise TableProvisioningError(
                    self.table_name,
                    f'Table {self.table_name} did not become active '
                    f'after {attempts} checks'
                )

            self.log.log_info(
                'waiting_for_active_table',
                tableName=self.table_name,
                tableStatus=table.get('TableStatus'),
                attempt=attempts
            )
            throw_if_cancelled(cancel_event, 'wait-for-active-table')
            await asyncio.sleep(self.options.poll_interval)


def is_table_active(table: Dict[str, Any]) -> bool:
    """True when the table and all of its global secondary indexes are ACTIVE."""
    if table.get('TableStatus') != ACTIVE:
        return False
    return all(
        index.get('IndexStatus') == ACTIVE
        for index in table.get('GlobalSecondaryIndexes') or []
    )


async def ensure_initialized_async(
    options: Union[DynamoDbOptions, OptionsMonitor],
    database: Any = None,
    cancel_event: Optional[asyncio.Event] = None
) -> None:
    """
    Set up the identity table before any store serves traffic.

    Safe to call repeatedly; a table that already matches is left alone.
    """
    await DynamoDbTableSetup(options, database).ensure_initialized(cancel_event)


def ensure_initialized(
    options: Union[DynamoDbOptions, OptionsMonitor],
    database: Any = None
) -> None:
    """
    Synchronous variant of ensure_initialized_async.

    Must not be called from a running event loop.
    """
    asyncio.run(ensure_initialized_async(options, database))
