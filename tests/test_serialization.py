"""
Tests for conversion between entities and DynamoDB items.
"""

from datetime import datetime, timezone

from identity_dynamodb.models import (
    DynamoDbRole,
    DynamoDbUser,
    DynamoDbUserClaim,
    DynamoDbUserLogin,
)
from identity_dynamodb.serialization import (
    from_role_item,
    from_user_item,
    to_role_item,
    to_user_claim_item,
    to_user_item,
    to_user_login_item,
)


class TestItemCodecs:
    """Test conversion between entities and DynamoDB items."""

    def test_user_item_carries_derived_key(self):
        user = DynamoDbUser(id='u1', user_name='alice')
        item = to_user_item(user)

        assert item['PartitionKey'] == {'S': 'USER#u1'}
        assert item['SortKey'] == {'S': '#USER#u1'}
        assert item['UserName'] == {'S': 'alice'}

    def test_none_attributes_are_omitted(self):
        item = to_user_item(DynamoDbUser(id='u1'))
        assert 'Email' not in item
        assert 'LockoutEnd' not in item

    def test_empty_index_key_strings_are_omitted(self):
        item = to_user_item(DynamoDbUser(id='u1', email='', normalized_email=''))
        assert item['Email'] == {'S': ''}
        assert 'NormalizedEmail' not in item

    def test_user_round_trip_keeps_every_field(self):
        user = DynamoDbUser(
            user_name='alice',
            normalized_user_name='ALICE',
            email='alice@example.com',
            normalized_email='ALICE@EXAMPLE.COM',
            email_confirmed=True,
            password_hash='hash',
            security_stamp='stamp',
            phone_number='555-0100',
            lockout_end=datetime(2030, 1, 1, tzinfo=timezone.utc),
            lockout_enabled=True,
            access_failed_count=3,
        )
        assert from_user_item(to_user_item(user)) == user

    def test_role_claims_round_trip(self):
        role = DynamoDbRole(name='Admin', claims={'perm': ['read', 'write']})
        loaded = from_role_item(to_role_item(role))
        assert loaded == role
        assert isinstance(loaded.claims['perm'], list)

    def test_claim_and_login_items_carry_index_attributes(self):
        claim_item = to_user_claim_item(DynamoDbUserClaim('u1', 'dept', 'eng'))
        login_item = to_user_login_item(DynamoDbUserLogin('u1', 'google', 'g-1'))

        assert claim_item['ClaimType'] == {'S': 'dept'}
        assert claim_item['UserId'] == {'S': 'u1'}
        assert login_item['SortKey'] == {'S': 'LOGIN#google-g-1'}
        assert 'ProviderDisplayName' not in login_item

    def test_claim_with_empty_value_leaves_claim_index(self):
        item = to_user_claim_item(DynamoDbUserClaim('u1', 'nickname', ''))

        assert item['SortKey'] == {'S': 'CLAIM#nickname-'}
        assert 'ClaimValue' not in item
