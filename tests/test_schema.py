"""
Tests for the table and index definitions sent to DynamoDB.
"""

from identity_dynamodb.schema import (
    INDEX_KEYS,
    USER_ID_INDEX,
    get_attribute_definitions,
    get_table_definition,
)


class TestTableDefinition:
    """Test the CreateTable definition."""

    def test_on_demand_definition_has_all_indexes_without_throughput(self):
        definition = get_table_definition('identity')

        assert definition['TableName'] == 'identity'
        assert definition['BillingMode'] == 'PAY_PER_REQUEST'
        assert 'ProvisionedThroughput' not in definition
        indexes = definition['GlobalSecondaryIndexes']
        assert [index['IndexName'] for index in indexes] == list(INDEX_KEYS)
        assert all(index['Projection'] == {'ProjectionType': 'ALL'} for index in indexes)
        assert all('ProvisionedThroughput' not in index for index in indexes)

    def test_provisioned_definition_carries_throughput(self):
        throughput = {'ReadCapacityUnits': 5, 'WriteCapacityUnits': 3}
        definition = get_table_definition('identity', 'PROVISIONED', throughput)

        assert definition['ProvisionedThroughput'] == throughput
        assert all(
            index['ProvisionedThroughput'] == throughput
            for index in definition['GlobalSecondaryIndexes']
        )

    def test_attribute_definitions_cover_every_key_attribute_once(self):
        names = [definition['AttributeName'] for definition in get_attribute_definitions()]
        assert len(names) == len(set(names))
        assert {'PartitionKey', 'SortKey', 'UserId', 'ClaimType', 'NormalizedName'} <= set(names)

    def test_attribute_definitions_for_one_index(self):
        names = [
            definition['AttributeName']
            for definition in get_attribute_definitions([USER_ID_INDEX])
        ]
        assert names == ['PartitionKey', 'SortKey', 'UserId']
