"""
Plumbing shared by the user and role stores.
"""

import asyncio
from typing import Any, Callable, Optional

from botocore.exceptions import ClientError

from ..backend import DynamoDbBackend
from ..config import DynamoDbOptions, OptionsMonitor
from ..errors import ArgumentNullError
from ..models import CONCURRENCY_FAILURE, IdentityResult, new_stamp
from ..serialization import AttributeMap, decode
from ..validation import throw_if_cancelled


class DynamoDbStoreCommon:
    """
    Holds the options monitor and the backend used by a store.

    Raises ArgumentNullError at construction time when the monitor is missing
    or when no DynamoDB client is available, rather than at first use.

    Stores built without an explicit client use options.database as it is at
    the time of each call, so OptionsMonitor.update can swap the client.
    """

    log_name = 'store'

    def __init__(self, options_monitor: OptionsMonitor, database: Any = None):
        if options_monitor is None:
            raise ArgumentNullError('options_monitor')

        self._options_monitor = options_monitor
        self._database = database

        client = database or options_monitor.current_value.database
        if client is None:
            raise ArgumentNullError('database')

        self.backend = DynamoDbBackend(
            client,
            options_monitor.aliases,
            client_source=self._current_client
        )

    @property
    def options(self) -> DynamoDbOptions:
        return self._options_monitor.current_value

    def _current_client(self) -> Any:
        # An explicitly passed client is pinned; otherwise follow the options
        return self._database or self.options.database

    async def _save_if_current(
        self,
        entity: Any,
        to_item: Callable[[Any], AttributeMap],
        cancel_event: Optional[asyncio.Event]
    ) -> IdentityResult:
        """
        Persist an entity only if its concurrency stamp matches the stored one.

        The stored item is reloaded and compared first; the write itself is
        conditional on the same stamp, so a writer that slips in between the
        read and the write is detected too. On success the entity carries a
        fresh stamp. On conflict nothing is written and the entity keeps its
        old stamp.
        """
        stored = await self.backend.get_item(entity.key.to_key())
        expected = entity.concurrency_stamp
        if stored is None or decode(stored).get('ConcurrencyStamp') != expected:
            return IdentityResult.failed(CONCURRENCY_FAILURE)

        if expected is None:
            condition = {'ConditionExpression': 'attribute_not_exists(ConcurrencyStamp)'}
        else:
            condition = {
                'ConditionExpression': 'ConcurrencyStamp = :expected',
                'ExpressionAttributeValues': {':expected': {'S': expected}},
            }

        throw_if_cancelled(cancel_event, 'update')
        entity.concurrency_stamp = new_stamp()
        try:
            await self.backend.put_item(to_item(entity), **condition)
        except ClientError as error:
            entity.concurrency_stamp = expected
            if error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException':
                return IdentityResult.failed(CONCURRENCY_FAILURE)
            raise

        return IdentityResult.success()
