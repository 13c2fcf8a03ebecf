"""
Async access to the identity table through a boto3 DynamoDB client.

boto3 is synchronous, so every call runs in a worker thread via
asyncio.to_thread and the calling task suspends while DynamoDB answers.
Item-level calls resolve the logical table name through the alias registry
on every call, so a reconfigured table name takes effect without
recreating any store. A client_source, when given, is consulted the same way.
"""

import asyncio
import functools
from typing import Any, Callable, Dict, List, Optional

from .aliases import TableAliasRegistry
from .schema import DEFAULT_TABLE_NAME
from .serialization import AttributeMap


# DynamoDB limits per batch request
BATCH_GET_LIMIT = 100
BATCH_WRITE_LIMIT = 25
MAX_UNPROCESSED_RETRIES = 5


class DynamoDbBackend:
    """
    Thin async wrapper around the primitive DynamoDB calls used by the stores
    and the table setup.
    """

    def __init__(
        self,
        client: Any,
        aliases: Optional[TableAliasRegistry] = None,
        client_source: Optional[Callable[[], Any]] = None
    ):
        self._client = client
        self._client_source = client_source
        self.aliases = aliases or TableAliasRegistry()

    @property
    def client(self) -> Any:
        """Client for the next call; follows client_source when one is given."""
        if self._client_source is not None:
            return self._client_source() or self._client
        return self._client

    @property
    def table_name(self) -> str:
        """Physical name of the identity table right now."""
        return self.aliases.resolve(DEFAULT_TABLE_NAME)

    async def _call(self, method: str, **kwargs: Any) -> Dict[str, Any]:
        bound = getattr(self.client, method)
        return await asyncio.to_thread(functools.partial(bound, **kwargs))

    # Table management

    async def list_tables(self) -> List[str]:
        """Return every table name, following pagination."""
        names: List[str] = []
        kwargs: Dict[str, Any] = {}
        while True:
            response = await self._call('list_tables', **kwargs)
            names.extend(response.get('TableNames', []))
            last = response.get('LastEvaluatedTableName')
            if not last:
                return names
            kwargs['ExclusiveStartTableName'] = last

    async def describe_table(self, table_name: str) -> Dict[str, Any]:
        response = await self._call('describe_table', TableName=table_name)
        return response['Table']

    async def create_table(self, definition: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call('create_table', **definition)

    async def update_table(self, table_name: str, **kwargs: Any) -> Dict[str, Any]:
        return await self._call('update_table', TableName=table_name, **kwargs)

    # Items

    async def put_item(self, item: AttributeMap, **kwargs: Any) -> None:
        await self._call('put_item', TableName=self.table_name, Item=item, **kwargs)

    async def get_item(self, key: AttributeMap) -> Optional[AttributeMap]:
        response = await self._call(
            'get_item',
            TableName=self.table_name,
            Key=key,
            ConsistentRead=True
        )
        return response.get('Item')

    async def delete_item(self, key: AttributeMap) -> None:
        await self._call('delete_item', TableName=self.table_name, Key=key)

    async def query(
        self,
        key_condition: str,
        values: Dict[str, Any],
        index_name: Optional[str] = None,
        names: Optional[Dict[str, str]] = None,
        limit: Optional[int] = None
    ) -> List[AttributeMap]:
        """
        Run a key-condition query against the table or one of its indexes.

        With a limit, a single page of at most `limit` items is returned;
        otherwise every page is read.
        """
        kwargs: Dict[str, Any] = {
            'TableName': self.table_name,
            'KeyConditionExpression': key_condition,
            'ExpressionAttributeValues': values,
        }
        if index_name:
            kwargs['IndexName'] = index_name
        if names:
            kwargs['ExpressionAttributeNames'] = names
        if limit is not None:
            kwargs['Limit'] = limit

        items: List[AttributeMap] = []
        while True:
            response = await self._call('query', **kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if limit is not None or not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key

    async def batch_get(self, keys: List[AttributeMap]) -> List[AttributeMap]:
        """
        Load many items by key. Missing items are simply absent from the
        result; order is not preserved.
        """
        items: List[AttributeMap] = []
        for i in range(0, len(keys), BATCH_GET_LIMIT):
            request = {self.table_name: {'Keys': keys[i:i + BATCH_GET_LIMIT]}}
            retries = 0
            while request:
                response = await self._call('batch_get_item', RequestItems=request)
                for table_items in response.get('Responses', {}).values():
                    items.extend(table_items)
                request = response.get('UnprocessedKeys') or {}
                if request:
                    retries = await self._backoff(retries)
        return items

    async def batch_write(
        self,
        puts: Optional[List[AttributeMap]] = None,
        deletes: Optional[List[AttributeMap]] = None
    ) -> None:
        """
        Put and delete items in batches of 25.

        Not atomic: if a batch fails, earlier batches stay applied.
        """
        requests = [{'PutRequest': {'Item': item}} for item in puts or []]
        requests += [{'DeleteRequest': {'Key': key}} for key in deletes or []]

        for i in range(0, len(requests), BATCH_WRITE_LIMIT):
            unprocessed = {self.table_name: requests[i:i + BATCH_WRITE_LIMIT]}
            retries = 0
            while unprocessed:
                response = await self._call('batch_write_item', RequestItems=unprocessed)
                unprocessed = response.get('UnprocessedItems') or {}
                if unprocessed:
                    retries = await self._backoff(retries)

    async def _backoff(self, retries: int) -> int:
        """Sleep with exponential backoff before retrying unprocessed items."""
        if retries >= MAX_UNPROCESSED_RETRIES:
            raise RuntimeError(
                f'DynamoDB left items unprocessed after {retries} retries'
            )
        await asyncio.sleep(2 ** retries * 0.1)
        return retries + 1
