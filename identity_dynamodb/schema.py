"""
Table definition for the single-table identity layout.

Access patterns:
1. Load user/role by id:            PartitionKey + SortKey (point read)
2. Find user by normalized email:   NormalizedEmail-index
3. Find user by normalized name:    NormalizedUserName-index
4. All rows owned by a user:        UserId-index (UserId + SortKey)
5. Users holding a claim:           ClaimType-ClaimValue-index
6. Users in a role:                 RoleName-index
7. Find login by provider key:      LoginProvider-ProviderKey-index
8. Find role by normalized name:    NormalizedName-index
"""

from typing import Any, Dict, List, Optional, Tuple

from .keys import PARTITION_KEY, SORT_KEY
from .types import BillingMode, ProvisionedThroughput


DEFAULT_TABLE_NAME = 'identity'

NORMALIZED_EMAIL_INDEX = 'NormalizedEmail-index'
NORMALIZED_USER_NAME_INDEX = 'NormalizedUserName-index'
USER_ID_INDEX = 'UserId-index'
CLAIM_INDEX = 'ClaimType-ClaimValue-index'
ROLE_NAME_INDEX = 'RoleName-index'
LOGIN_INDEX = 'LoginProvider-ProviderKey-index'
NORMALIZED_NAME_INDEX = 'NormalizedName-index'

# Index name -> (hash attribute, range attribute or None)
INDEX_KEYS: Dict[str, Tuple[str, Optional[str]]] = {
    # User indexes
    NORMALIZED_EMAIL_INDEX: ('NormalizedEmail', None),
    NORMALIZED_USER_NAME_INDEX: ('NormalizedUserName', None),
    USER_ID_INDEX: ('UserId', SORT_KEY),
    CLAIM_INDEX: ('ClaimType', 'ClaimValue'),
    ROLE_NAME_INDEX: ('RoleName', None),
    LOGIN_INDEX: ('LoginProvider', 'ProviderKey'),
    # Role indexes
    NORMALIZED_NAME_INDEX: ('NormalizedName', None),
}

# Attributes that act as index keys; DynamoDB rejects empty strings for them
INDEX_KEY_ATTRIBUTES = frozenset(
    attribute
    for hash_key, range_key in INDEX_KEYS.values()
    for attribute in (hash_key, range_key)
    if attribute is not None and attribute != SORT_KEY
)


def _throughput(
    billing_mode: BillingMode,
    provisioned_throughput: ProvisionedThroughput
) -> Optional[ProvisionedThroughput]:
    if billing_mode == 'PAY_PER_REQUEST':
        return None
    return {
        'ReadCapacityUnits': provisioned_throughput['ReadCapacityUnits'],
        'WriteCapacityUnits': provisioned_throughput['WriteCapacityUnits'],
    }


def get_index_definition(
    index_name: str,
    billing_mode: BillingMode,
    provisioned_throughput: ProvisionedThroughput
) -> Dict[str, Any]:
    """
    Build one global secondary index definition.

    Throughput is only attached in PROVISIONED mode.
    """
    hash_key, range_key = INDEX_KEYS[index_name]
    key_schema = [{'AttributeName': hash_key, 'KeyType': 'HASH'}]
    if range_key:
        key_schema.append({'AttributeName': range_key, 'KeyType': 'RANGE'})

    index: Dict[str, Any] = {
        'IndexName': index_name,
        'KeySchema': key_schema,
        'Projection': {'ProjectionType': 'ALL'},
    }
    throughput = _throughput(billing_mode, provisioned_throughput)
    if throughput:
        index['ProvisionedThroughput'] = throughput
    return index


def get_index_definitions(
    billing_mode: BillingMode,
    provisioned_throughput: ProvisionedThroughput
) -> List[Dict[str, Any]]:
    return [
        get_index_definition(name, billing_mode, provisioned_throughput)
        for name in INDEX_KEYS
    ]


def get_attribute_definitions(index_names: Optional[List[str]] = None) -> List[Dict[str, str]]:
    """
    Attribute definitions for the table keys and the given indexes.

    All key attributes are strings.
    """
    names = [PARTITION_KEY, SORT_KEY]
    for index_name in index_names if index_names is not None else INDEX_KEYS:
        for attribute in INDEX_KEYS[index_name]:
            if attribute and attribute not in names:
                names.append(attribute)
    return [{'AttributeName': name, 'AttributeType': 'S'} for name in names]


def get_table_definition(
    table_name: str,
    billing_mode: BillingMode = 'PAY_PER_REQUEST',
    provisioned_throughput: Optional[ProvisionedThroughput] = None
) -> Dict[str, Any]:
    """
    Get the DynamoDB table definition for CreateTable.

    Returns a dictionary suitable for boto3 create_table().
    """
    provisioned_throughput = provisioned_throughput or {
        'ReadCapacityUnits': 1,
        'WriteCapacityUnits': 1,
    }
    definition: Dict[str, Any] = {
        'TableName': table_name,
        'BillingMode': billing_mode,
        'KeySchema': [
            {'AttributeName': PARTITION_KEY, 'KeyType': 'HASH'},
            {'AttributeName': SORT_KEY, 'KeyType': 'RANGE'},
        ],
        'AttributeDefinitions': get_attribute_definitions(),
        'GlobalSecondaryIndexes': get_index_definitions(
            billing_mode, provisioned_throughput
        ),
    }
    throughput = _throughput(billing_mode, provisioned_throughput)
    if throughput:
        definition['ProvisionedThroughput'] = throughput
    return definition
