"""
Item codecs between entities and DynamoDB attribute-value maps.

Every to_*_item function writes the derived PartitionKey/SortKey from
keys.py, so a persisted key always matches the identifiers it came from.
Values that are None are left out of the item, as are empty strings on index
key attributes. Missing attributes read back as None or the field default.

A row whose index key attribute is left out is absent from that index: a
user claim with an empty type or value is readable through the user's own
claims but is never returned by a claim index lookup.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Type

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from .keys import KeyPair, PARTITION_KEY, SORT_KEY
from .models import (
    DynamoDbRole,
    DynamoDbUser,
    DynamoDbUserClaim,
    DynamoDbUserLogin,
    DynamoDbUserRole,
    DynamoDbUserToken,
)
from .schema import INDEX_KEY_ATTRIBUTES
from .types import (
    RoleItem,
    UserClaimItem,
    UserItem,
    UserLoginItem,
    UserRoleItem,
    UserTokenItem,
)

AttributeMap = Dict[str, Dict[str, Any]]

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def serialize_datetime(value: Optional[datetime]) -> Optional[str]:
    """Store datetimes as ISO-8601 strings; None stays absent."""
    return value.isoformat() if value is not None else None


def deserialize_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _plain(value: Any) -> Any:
    # TypeDeserializer yields Decimal for numbers and sets for string sets
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, set, tuple)):
        return [_plain(v) for v in value]
    return value


def encode(key: KeyPair, attributes: Dict[str, Any]) -> AttributeMap:
    """Encode a plain item into DynamoDB attribute-value form."""
    item: Dict[str, Any] = {
        PARTITION_KEY: key.partition_key,
        SORT_KEY: key.sort_key,
    }
    for name, value in attributes.items():
        if value is None:
            continue
        if value == '' and name in INDEX_KEY_ATTRIBUTES:
            continue
        item[name] = value
    return {name: _serializer.serialize(value) for name, value in item.items()}


def decode(item: AttributeMap) -> Dict[str, Any]:
    """Decode a DynamoDB item into plain Python values."""
    return {name: _plain(_deserializer.deserialize(value)) for name, value in item.items()}


def to_user_item(user: DynamoDbUser) -> AttributeMap:
    attributes: UserItem = {
        'Id': user.id,
        'UserName': user.user_name,
        'NormalizedUserName': user.normalized_user_name,
        'Email': user.email,
        'NormalizedEmail': user.normalized_email,
        'EmailConfirmed': user.email_confirmed,
        'PasswordHash': user.password_hash,
        'SecurityStamp': user.security_stamp,
        'ConcurrencyStamp': user.concurrency_stamp,
        'PhoneNumber': user.phone_number,
        'PhoneNumberConfirmed': user.phone_number_confirmed,
        'TwoFactorEnabled': user.two_factor_enabled,
        'LockoutEnd': serialize_datetime(user.lockout_end),
        'LockoutEnabled': user.lockout_enabled,
        'AccessFailedCount': user.access_failed_count,
    }
    return encode(user.key, attributes)


def from_user_item(item: AttributeMap, user_type: Type[DynamoDbUser] = DynamoDbUser) -> DynamoDbUser:
    data: UserItem = decode(item)
    return user_type(
        id=data['Id'],
        user_name=data.get('UserName'),
        normalized_user_name=data.get('NormalizedUserName'),
        email=data.get('Email'),
        normalized_email=data.get('NormalizedEmail'),
        email_confirmed=data.get('EmailConfirmed', False),
        password_hash=data.get('PasswordHash'),
        security_stamp=data.get('SecurityStamp'),
        concurrency_stamp=data.get('ConcurrencyStamp'),
        phone_number=data.get('PhoneNumber'),
        phone_number_confirmed=data.get('PhoneNumberConfirmed', False),
        two_factor_enabled=data.get('TwoFactorEnabled', False),
        lockout_end=deserialize_datetime(data.get('LockoutEnd')),
        lockout_enabled=data.get('LockoutEnabled', False),
        access_failed_count=data.get('AccessFailedCount', 0),
    )


def to_role_item(role: DynamoDbRole) -> AttributeMap:
    attributes: RoleItem = {
        'Id': role.id,
        'Name': role.name,
        'NormalizedName': role.normalized_name,
        'ConcurrencyStamp': role.concurrency_stamp,
        'Claims': {
            claim_type: list(values)
            for claim_type, values in role.claims.items()
        },
    }
    return encode(role.key, attributes)


def from_role_item(item: AttributeMap, role_type: Type[DynamoDbRole] = DynamoDbRole) -> DynamoDbRole:
    data: RoleItem = decode(item)
    claims: Dict[str, List[str]] = data.get('Claims') or {}
    return role_type(
        id=data['Id'],
        name=data.get('Name'),
        normalized_name=data.get('NormalizedName'),
        concurrency_stamp=data.get('ConcurrencyStamp'),
        claims={claim_type: list(values) for claim_type, values in claims.items()},
    )


def to_user_claim_item(claim: DynamoDbUserClaim) -> AttributeMap:
    attributes: UserClaimItem = {
        'UserId': claim.user_id,
        'ClaimType': claim.claim_type,
        'ClaimValue': claim.claim_value,
    }
    return encode(claim.key, attributes)


def from_user_claim_item(item: AttributeMap) -> DynamoDbUserClaim:
    data: UserClaimItem = decode(item)
    return DynamoDbUserClaim(
        user_id=data['UserId'],
        claim_type=data.get('ClaimType', ''),
        claim_value=data.get('ClaimValue', ''),
    )


def to_user_login_item(login: DynamoDbUserLogin) -> AttributeMap:
    attributes: UserLoginItem = {
        'UserId': login.user_id,
        'LoginProvider': login.login_provider,
        'ProviderKey': login.provider_key,
        'ProviderDisplayName': login.provider_display_name,
    }
    return encode(login.key, attributes)


def from_user_login_item(item: AttributeMap) -> DynamoDbUserLogin:
    data: UserLoginItem = decode(item)
    return DynamoDbUserLogin(
        user_id=data['UserId'],
        login_provider=data.get('LoginProvider', ''),
        provider_key=data.get('ProviderKey', ''),
        provider_display_name=data.get('ProviderDisplayName'),
    )


def to_user_role_item(user_role: DynamoDbUserRole) -> AttributeMap:
    attributes: UserRoleItem = {
        'UserId': user_role.user_id,
        'RoleName': user_role.role_name,
    }
    return encode(user_role.key, attributes)


def from_user_role_item(item: AttributeMap) -> DynamoDbUserRole:
    data: UserRoleItem = decode(item)
    return DynamoDbUserRole(
        user_id=data['UserId'],
        role_name=data.get('RoleName', ''),
    )


def to_user_token_item(token: DynamoDbUserToken) -> AttributeMap:
    attributes: UserTokenItem = {
        'UserId': token.user_id,
        'LoginProvider': token.login_provider,
        'Name': token.name,
        'Value': token.value,
    }
    return encode(token.key, attributes)


def from_user_token_item(item: AttributeMap) -> DynamoDbUserToken:
    data: UserTokenItem = decode(item)
    return DynamoDbUserToken(
        user_id=data['UserId'],
        login_provider=data.get('LoginProvider', ''),
        name=data.get('Name', ''),
        value=data.get('Value'),
    )
