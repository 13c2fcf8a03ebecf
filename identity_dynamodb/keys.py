"""
Key encoding for the single-table identity layout.

Every entity lives in one table and is addressed by a derived
PartitionKey/SortKey pair:

- User:      USER#{id}       / #USER#{id}
- Role:      ROLE#{id}       / #ROLE#{id}
- UserClaim: USER#{userId}   / CLAIM#{type}-{value}
- UserLogin: USER#{userId}   / LOGIN#{provider}-{providerKey}
- UserRole:  USER#{userId}   / ROLE#{roleName}
- UserToken: USER#{userId}   / TOKEN#{provider}-{name}

Keys are never stored on entity objects. They are recomputed here whenever an
item is written or addressed, so a key can never drift from the identifiers
it is built from. Identifiers are encoded literally, empty strings included.
"""

from typing import Dict, NamedTuple


PARTITION_KEY = 'PartitionKey'
SORT_KEY = 'SortKey'

USER_PREFIX = 'USER#'
USER_SORT_PREFIX = '#USER#'
ROLE_PREFIX = 'ROLE#'
ROLE_SORT_PREFIX = '#ROLE#'
CLAIM_PREFIX = 'CLAIM#'
LOGIN_PREFIX = 'LOGIN#'
TOKEN_PREFIX = 'TOKEN#'

# User role membership rows share the ROLE# prefix, but only as a sort key
USER_ROLE_PREFIX = ROLE_PREFIX


class KeyPair(NamedTuple):
    """Derived primary key of one item."""
    partition_key: str
    sort_key: str

    def to_key(self) -> Dict[str, Dict[str, str]]:
        """Return the key in DynamoDB attribute-value form."""
        return {
            PARTITION_KEY: {'S': self.partition_key},
            SORT_KEY: {'S': self.sort_key},
        }


def user_partition(user_id: str) -> str:
    return f'{USER_PREFIX}{user_id}'


def user_key(user_id: str) -> KeyPair:
    return KeyPair(user_partition(user_id), f'{USER_SORT_PREFIX}{user_id}')


def role_key(role_id: str) -> KeyPair:
    return KeyPair(f'{ROLE_PREFIX}{role_id}', f'{ROLE_SORT_PREFIX}{role_id}')


def user_claim_key(user_id: str, claim_type: str, claim_value: str) -> KeyPair:
    return KeyPair(
        user_partition(user_id),
        f'{CLAIM_PREFIX}{claim_type}-{claim_value}'
    )


def user_login_key(user_id: str, login_provider: str, provider_key: str) -> KeyPair:
    return KeyPair(
        user_partition(user_id),
        f'{LOGIN_PREFIX}{login_provider}-{provider_key}'
    )


def user_role_key(user_id: str, role_name: str) -> KeyPair:
    return KeyPair(user_partition(user_id), f'{USER_ROLE_PREFIX}{role_name}')


def user_token_key(user_id: str, login_provider: str, name: str) -> KeyPair:
    return KeyPair(
        user_partition(user_id),
        f'{TOKEN_PREFIX}{login_provider}-{name}'
    )
